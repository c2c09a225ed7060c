"""mvntoolbox - Maven dependency collection and resolution toolbox."""

__version__ = "0.3.0"

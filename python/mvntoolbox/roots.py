"""Resolution roots: what collection and resolution start from.

A root moves through three states. A ``RawRoot`` only knows its artifact
(and possibly caller supplied dependency data) and needs its descriptor read.
A ``LoadedRoot`` has its dependencies populated. A ``PreparedRoot`` is the
frozen form handed to the resolver; preparing it again is a no-op.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from .models import Coordinate, Dependency


class RootState(Enum):
    RAW = "raw"
    LOADED = "loaded"
    PREPARED = "prepared"


@dataclass(frozen=True)
class ResolutionRoot:
    """Common shape of all root states."""

    artifact: Coordinate
    dependencies: Tuple[Dependency, ...] = ()
    managed_dependencies: Tuple[Dependency, ...] = ()

    state = None

    def __post_init__(self):
        object.__setattr__(self, 'dependencies', tuple(self.dependencies or ()))
        object.__setattr__(self, 'managed_dependencies', tuple(self.managed_dependencies or ()))

    @property
    def is_prepared(self) -> bool:
        return self.state is RootState.PREPARED

    @property
    def needs_loading(self) -> bool:
        return self.state is RootState.RAW


@dataclass(frozen=True)
class RawRoot(ResolutionRoot):
    """Root whose descriptor has not been read yet."""

    state = RootState.RAW

    def loaded(
        self,
        dependencies: Sequence[Dependency],
        managed_dependencies: Sequence[Dependency],
    ) -> 'LoadedRoot':
        return LoadedRoot(self.artifact, tuple(dependencies), tuple(managed_dependencies))

    def prepared(self) -> 'PreparedRoot':
        raise ValueError(f"Root {self.artifact} must be loaded before it can be prepared")


@dataclass(frozen=True)
class LoadedRoot(ResolutionRoot):
    """Root with its direct and managed dependencies populated."""

    state = RootState.LOADED

    def prepared(self) -> 'PreparedRoot':
        return PreparedRoot(self.artifact, self.dependencies, self.managed_dependencies)


@dataclass(frozen=True)
class PreparedRoot(ResolutionRoot):
    """Root ready to be collected or resolved."""

    state = RootState.PREPARED

    def prepared(self) -> 'PreparedRoot':
        return self

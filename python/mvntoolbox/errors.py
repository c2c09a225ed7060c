"""Exception types raised by the toolbox."""

from typing import List, Optional


class ToolboxError(Exception):
    """Base class for all toolbox failures."""


class CoordinateParseError(ToolboxError, ValueError):
    """A coordinate string could not be parsed."""

    def __init__(self, gav: str, message: Optional[str] = None):
        self.gav = gav
        super().__init__(
            message or f"Bad artifact coordinates {gav}, expected format is "
                       f"<groupId>:<artifactId>[:<extension>[:<classifier>]]:<version>"
        )


class CoordinateResolutionError(CoordinateParseError):
    """A short form coordinate had no managed dependency supplying its version."""

    def __init__(self, gav: str):
        super().__init__(gav, f"Cannot resolve coordinates {gav}: no version given and no managed dependency matches")


class RepositorySpecFormatError(ToolboxError, ValueError):
    """A compact remote repository spec is malformed."""

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(f"Invalid remote repository spec: {spec!r} (expected url, id::url or id::type::url)")


class DescriptorFetchError(ToolboxError):
    """The engine could not produce the artifact descriptor."""

    def __init__(self, coordinate, cause: Optional[BaseException] = None):
        self.coordinate = coordinate
        self.cause = cause
        message = f"Failed to read artifact descriptor for {coordinate}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class GraphCollectionError(ToolboxError):
    """The engine failed to build the dependency graph.

    The partial collect result is kept on ``result`` so callers can inspect
    what was collected before the failure.
    """

    def __init__(self, result, message: Optional[str] = None):
        self.result = result
        if message is None:
            exceptions = getattr(result, "exceptions", None) or []
            root = getattr(getattr(result, "request", None), "root_artifact", None)
            message = f"Failed to collect dependencies at {root}"
            if exceptions:
                message += f": {exceptions[0]}"
        super().__init__(message)


class ResolutionError(ToolboxError):
    """File resolution failed for a graph node or for the root."""

    def __init__(self, result, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.result = result
        self.cause = cause
        if message is None:
            message = "Failed to resolve dependencies"
            if cause is not None:
                message += f": {cause}"
        super().__init__(message)


class ArtifactResolutionError(ResolutionError):
    """One or more artifacts could not be located."""

    def __init__(self, results: List):
        self.results = results
        missing = [str(r.artifact) for r in results if not r.is_resolved]
        super().__init__(results, message=f"Could not resolve artifacts: {', '.join(missing)}")


class VersionRangeError(ToolboxError):
    """A version range could not be parsed or resolved."""

    def __init__(self, coordinate, cause: Optional[BaseException] = None):
        self.coordinate = coordinate
        self.cause = cause
        message = f"Failed to resolve version range for {coordinate}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class MetadataParseError(ToolboxError):
    """Repository metadata file is not readable."""


class TransportError(ToolboxError):
    """A repository request failed for a reason other than not-found."""

    def __init__(self, url: str, status: Optional[int] = None, cause: Optional[BaseException] = None):
        self.url = url
        self.status = status
        self.cause = cause
        if status is not None:
            message = f"HTTP {status} fetching {url}"
        else:
            message = f"Error fetching {url}: {cause}"
        super().__init__(message)

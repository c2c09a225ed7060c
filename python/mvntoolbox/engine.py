"""Narrow interface to the engine that collects graphs and locates files.

The resolver only talks to a ``ResolverEngine``. Every call carries an
immutable ``SessionConfig`` so tweaks made for one request (verbose conflict
tracking, forced metadata refresh) never leak into another.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .models import Coordinate, Dependency, DependencyNode, RemoteRepository
from .version import MavenVersion

UPDATE_POLICY_NEVER = "never"
UPDATE_POLICY_DAILY = "daily"
UPDATE_POLICY_ALWAYS = "always"


@dataclass(frozen=True)
class SessionConfig:
    """Per-call engine configuration."""

    verbose: bool = False
    update_policy: str = UPDATE_POLICY_DAILY
    ignore_missing_descriptor: bool = False
    ignore_invalid_descriptor: bool = False
    offline: bool = False


@dataclass(frozen=True)
class DescriptorRequest:
    artifact: Coordinate
    repositories: Tuple[RemoteRepository, ...] = ()
    request_context: str = ""


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Dependency data declared by an artifact's descriptor (POM)."""

    artifact: Coordinate
    dependencies: Tuple[Dependency, ...] = ()
    managed_dependencies: Tuple[Dependency, ...] = ()
    repositories: Tuple[RemoteRepository, ...] = ()


@dataclass
class CollectRequest:
    root_artifact: Coordinate
    root_dependency: Optional[Dependency] = None
    dependencies: List[Dependency] = field(default_factory=list)
    managed_dependencies: List[Dependency] = field(default_factory=list)
    repositories: List[RemoteRepository] = field(default_factory=list)
    request_context: str = ""

    def __str__(self) -> str:
        root = self.root_dependency or self.root_artifact
        return f"{root} -> {[str(d) for d in self.dependencies]} < {[r.id for r in self.repositories]}"


@dataclass
class CollectResult:
    request: CollectRequest
    root: Optional[DependencyNode] = None
    exceptions: List[Exception] = field(default_factory=list)


DependencyFilter = Callable[[DependencyNode, Sequence[DependencyNode]], bool]


@dataclass
class DependencyRequest:
    """Resolve files for an already collected graph, or collect first when ``root`` is None."""

    collect_request: Optional[CollectRequest] = None
    root: Optional[DependencyNode] = None
    filter: Optional[DependencyFilter] = None

    def __str__(self) -> str:
        target = self.root.artifact if self.root is not None else self.collect_request
        return f"{target} ({self.filter})"


@dataclass(frozen=True)
class ArtifactRequest:
    artifact: Coordinate
    repositories: Tuple[RemoteRepository, ...] = ()
    request_context: str = ""


@dataclass
class ArtifactResult:
    """Outcome of locating one artifact file."""

    request: ArtifactRequest
    file: Optional[Path] = None
    repository: Optional[RemoteRepository] = None
    exceptions: List[Exception] = field(default_factory=list)

    @property
    def artifact(self) -> Coordinate:
        return self.request.artifact

    @property
    def is_resolved(self) -> bool:
        return self.file is not None


@dataclass
class DependencyResult:
    request: DependencyRequest
    root: Optional[DependencyNode] = None
    artifact_results: List[ArtifactResult] = field(default_factory=list)
    collect_exceptions: List[Exception] = field(default_factory=list)


@dataclass(frozen=True)
class VersionRangeRequest:
    artifact: Coordinate
    repositories: Tuple[RemoteRepository, ...] = ()
    request_context: str = ""


@dataclass
class VersionRangeResult:
    request: VersionRangeRequest
    versions: List[MavenVersion] = field(default_factory=list)

    @property
    def highest_version(self) -> Optional[MavenVersion]:
        return self.versions[-1] if self.versions else None


@dataclass(frozen=True)
class MetadataRequest:
    """Repository metadata: group level when ``artifact_id`` is None."""

    group_id: str
    repository: RemoteRepository
    artifact_id: Optional[str] = None
    type: str = "maven-metadata.xml"
    request_context: str = ""


@dataclass
class MetadataResult:
    request: MetadataRequest
    file: Optional[Path] = None
    exception: Optional[Exception] = None

    @property
    def is_resolved(self) -> bool:
        return self.file is not None and self.file.is_file()


class ResolverEngine(ABC):
    """Capabilities the resolver needs from a backing engine."""

    @abstractmethod
    def read_artifact_descriptor(self, config: SessionConfig, request: DescriptorRequest) -> ArtifactDescriptor:
        """Raises DescriptorFetchError when the descriptor cannot be produced."""

    @abstractmethod
    def collect_dependencies(self, config: SessionConfig, request: CollectRequest) -> CollectResult:
        """Raises GraphCollectionError when the graph cannot be built."""

    @abstractmethod
    def resolve_dependencies(self, config: SessionConfig, request: DependencyRequest) -> DependencyResult:
        """Raises ResolutionError when any accepted node's file cannot be located."""

    @abstractmethod
    def resolve_artifacts(self, config: SessionConfig, requests: Sequence[ArtifactRequest]) -> List[ArtifactResult]:
        """Returns one result per request, in order; failures are recorded, not raised."""

    @abstractmethod
    def resolve_version_range(self, config: SessionConfig, request: VersionRangeRequest) -> VersionRangeResult:
        """Raises VersionRangeError when the range cannot be resolved."""

    @abstractmethod
    def resolve_metadata(self, config: SessionConfig, requests: Sequence[MetadataRequest]) -> List[MetadataResult]:
        """Returns one result per request, in order."""

    def close(self) -> None:
        """Release engine resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

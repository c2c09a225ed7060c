"""Resolver engine backed by Maven 2 layout repositories and a local repository directory."""

import logging
import time
from collections import deque
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ToolboxConfig
from .engine import (
    UPDATE_POLICY_ALWAYS,
    UPDATE_POLICY_NEVER,
    ArtifactDescriptor,
    ArtifactRequest,
    ArtifactResult,
    CollectRequest,
    CollectResult,
    DependencyRequest,
    DependencyResult,
    DescriptorRequest,
    MetadataRequest,
    MetadataResult,
    ResolverEngine,
    SessionConfig,
    VersionRangeRequest,
    VersionRangeResult,
)
from .errors import (
    ArtifactResolutionError,
    DescriptorFetchError,
    GraphCollectionError,
    MetadataParseError,
    ResolutionError,
    TransportError,
    VersionRangeError,
)
from .merger import merge_dependencies
from .metadata import read_metadata
from .models import Coordinate, Dependency, DependencyNode, RemoteRepository
from .pom import PomError, PomReader
from .scopes import Scopes
from .transport import RepositoryTransport, create_session
from .version import VersionConstraint, is_version_range

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60

# Scopes that never propagate past a direct dependency
NON_TRANSITIVE_SCOPES = frozenset({Scopes.TEST, Scopes.PROVIDED})


def artifact_path(coordinate: Coordinate) -> str:
    """Relative path of an artifact in the Maven 2 repository layout."""
    group_path = coordinate.group_id.replace('.', '/')
    file_name = f"{coordinate.artifact_id}-{coordinate.version}"
    if coordinate.classifier:
        file_name += f"-{coordinate.classifier}"
    file_name += f".{coordinate.extension}"
    return f"{group_path}/{coordinate.artifact_id}/{coordinate.version}/{file_name}"


def metadata_dir(group_id: str, artifact_id: Optional[str] = None) -> str:
    path = group_id.replace('.', '/')
    if artifact_id:
        path += f"/{artifact_id}"
    return path


def derive_scope(parent_scope: str, child_scope: str) -> str:
    """Effective scope of a transitive dependency given its parent's scope."""
    if not parent_scope:
        return child_scope
    if child_scope == Scopes.SYSTEM:
        return Scopes.SYSTEM
    if parent_scope in (Scopes.TEST, Scopes.PROVIDED):
        return parent_scope
    if parent_scope == Scopes.RUNTIME and child_scope == Scopes.COMPILE:
        return Scopes.RUNTIME
    return child_scope


def is_stale(path: Path, update_policy: str) -> bool:
    """Whether a cached remote file must be fetched again under the update policy."""
    if update_policy == UPDATE_POLICY_ALWAYS:
        return True
    if update_policy == UPDATE_POLICY_NEVER:
        return False
    if update_policy.startswith("interval:"):
        max_age = int(update_policy.split(":", 1)[1]) * 60
    else:
        max_age = DAY_SECONDS
    return time.time() - path.stat().st_mtime > max_age


class MavenRepositoryEngine(ResolverEngine):
    """
    Engine reading POMs, metadata and artifacts over HTTP.

    Remote files are cached under ``local_repository`` using the Maven 2
    layout; repository metadata is stored per repository id as
    ``maven-metadata-<id>.xml``. Graphs are collected breadth first with
    nearest-wins mediation, so the dependency declared closest to the root
    (first declared on ties) is selected.
    """

    def __init__(self, local_repository: Path, transport: RepositoryTransport):
        self.local_repository = Path(local_repository).expanduser()
        self.transport = transport

    @classmethod
    def from_config(cls, config: ToolboxConfig) -> 'MavenRepositoryEngine':
        transport = RepositoryTransport(create_session(config.user_agent), timeout=config.timeout)
        return cls(config.local_repository, transport)

    def close(self) -> None:
        self.transport.close()

    # -- files -------------------------------------------------------------

    def _fetch_artifact(
        self,
        config: SessionConfig,
        repositories: Sequence[RemoteRepository],
        coordinate: Coordinate,
    ) -> Tuple[Optional[Path], Optional[RemoteRepository], List[Exception]]:
        relative = artifact_path(coordinate)
        local = self.local_repository / relative
        if local.is_file() and not (coordinate.is_snapshot and is_stale(local, config.update_policy)):
            return local, None, []

        errors: List[Exception] = []
        if not config.offline:
            for repository in repositories:
                try:
                    if self.transport.download(f"{repository.url}/{relative}", local):
                        return local, repository, []
                except TransportError as e:
                    logger.warning(f"Failed to fetch {coordinate} from {repository.id}: {e}")
                    errors.append(e)
        if local.is_file():
            return local, None, []
        repo_ids = ", ".join(r.id for r in repositories) or "no repositories"
        errors.append(FileNotFoundError(f"Could not find artifact {coordinate} in {repo_ids}"))
        return None, None, errors

    def _fetch_metadata(
        self,
        config: SessionConfig,
        repository: RemoteRepository,
        group_id: str,
        artifact_id: Optional[str] = None,
    ) -> Optional[Path]:
        base = metadata_dir(group_id, artifact_id)
        local = self.local_repository / base / f"maven-metadata-{repository.id}.xml"
        if local.is_file() and (config.offline or not is_stale(local, config.update_policy)):
            return local
        if config.offline:
            return None
        if self.transport.download(f"{repository.url}/{base}/maven-metadata.xml", local):
            return local
        return None

    # -- descriptors -------------------------------------------------------

    def read_artifact_descriptor(self, config: SessionConfig, request: DescriptorRequest) -> ArtifactDescriptor:
        repositories = request.repositories

        def fetch_pom(coordinate: Coordinate) -> bytes:
            pom = Coordinate(coordinate.group_id, coordinate.artifact_id, coordinate.version, extension='pom')
            path, _, errors = self._fetch_artifact(config, repositories, pom)
            if path is None:
                raise errors[0]
            return path.read_bytes()

        try:
            return PomReader(fetch_pom).read(request.artifact)
        except (FileNotFoundError, TransportError) as e:
            if config.ignore_missing_descriptor:
                logger.debug(f"Ignoring missing descriptor of {request.artifact}: {e}")
                return ArtifactDescriptor(request.artifact)
            raise DescriptorFetchError(request.artifact, e) from e
        except PomError as e:
            if config.ignore_invalid_descriptor:
                logger.debug(f"Ignoring invalid descriptor of {request.artifact}: {e}")
                return ArtifactDescriptor(request.artifact)
            raise DescriptorFetchError(request.artifact, e) from e

    # -- collection --------------------------------------------------------

    def collect_dependencies(self, config: SessionConfig, request: CollectRequest) -> CollectResult:
        result = CollectResult(request)
        repositories = tuple(request.repositories)
        descriptors: Dict[Coordinate, ArtifactDescriptor] = {}

        def descriptor_of(coordinate: Coordinate) -> ArtifactDescriptor:
            if coordinate not in descriptors:
                descriptors[coordinate] = self.read_artifact_descriptor(
                    config, DescriptorRequest(coordinate, repositories, request.request_context)
                )
            return descriptors[coordinate]

        dependencies = list(request.dependencies)
        managed = list(request.managed_dependencies)
        root_dependency = request.root_dependency
        if root_dependency is not None:
            try:
                root_descriptor = descriptor_of(root_dependency.coordinate)
                dependencies = list(merge_dependencies(dependencies, root_descriptor.dependencies))
                managed = list(merge_dependencies(managed, root_descriptor.managed_dependencies))
            except DescriptorFetchError as e:
                result.exceptions.append(e)
        else:
            root_dependency = Dependency(request.root_artifact, "")

        management: Dict[str, Dependency] = {}
        for dependency in managed:
            management.setdefault(dependency.coordinate.versionless_id, dependency)

        root = DependencyNode(root_dependency)
        result.root = root
        selected: Dict[str, DependencyNode] = {}
        queue = deque((root, dependency, 1, (), (root_dependency.coordinate.versionless_id,))
                      for dependency in dependencies)

        while queue:
            parent, dependency, depth, exclusions, path = queue.popleft()
            premanaged_version = premanaged_scope = None
            if depth > 1:
                dependency, premanaged_version, premanaged_scope = self._apply_management(dependency, management)
            try:
                dependency = self._select_version(config, repositories, request.request_context, dependency)
            except VersionRangeError as e:
                result.exceptions.append(e)
                continue

            key = dependency.coordinate.versionless_id
            if key in path:
                logger.debug(f"Cycle detected at {dependency.coordinate}, not descending")
                continue

            node = DependencyNode(
                dependency,
                premanaged_version=premanaged_version,
                premanaged_scope=premanaged_scope,
            )
            winner = selected.get(key)
            if winner is not None:
                if config.verbose:
                    node.winner = winner
                    parent.add_child(node)
                continue
            selected[key] = node
            parent.add_child(node)

            try:
                descriptor = descriptor_of(dependency.coordinate)
            except DescriptorFetchError as e:
                result.exceptions.append(e)
                continue

            child_exclusions = exclusions + dependency.exclusions
            for child in descriptor.dependencies:
                if child.scope in NON_TRANSITIVE_SCOPES or child.optional:
                    continue
                if any(exclusion.matches(child.coordinate) for exclusion in child_exclusions):
                    logger.debug(f"Excluded {child.coordinate} below {dependency.coordinate}")
                    continue
                derived = child.with_scope(derive_scope(dependency.scope, child.scope))
                queue.append((node, derived, depth + 1, child_exclusions, path + (key,)))

        logger.debug(f"Collected {len(selected)} dependencies of {request.root_artifact}")
        if result.exceptions:
            raise GraphCollectionError(result)
        return result

    @staticmethod
    def _apply_management(
        dependency: Dependency,
        management: Dict[str, Dependency],
    ) -> Tuple[Dependency, Optional[str], Optional[str]]:
        managed = management.get(dependency.coordinate.versionless_id)
        if managed is None:
            return dependency, None, None
        premanaged_version = premanaged_scope = None
        if managed.coordinate.version and managed.coordinate.version != dependency.coordinate.version:
            premanaged_version = dependency.coordinate.version
            dependency = dependency.with_coordinate(dependency.coordinate.with_version(managed.coordinate.version))
        if managed.scope and managed.scope != dependency.scope:
            premanaged_scope = dependency.scope
            dependency = dependency.with_scope(managed.scope)
        return dependency, premanaged_version, premanaged_scope

    def _select_version(
        self,
        config: SessionConfig,
        repositories: Tuple[RemoteRepository, ...],
        request_context: str,
        dependency: Dependency,
    ) -> Dependency:
        if not is_version_range(dependency.coordinate.version):
            return dependency
        result = self.resolve_version_range(
            config, VersionRangeRequest(dependency.coordinate, repositories, request_context)
        )
        highest = result.highest_version
        if highest is None:
            raise VersionRangeError(dependency.coordinate, ValueError("no version matches the range"))
        return dependency.with_coordinate(dependency.coordinate.with_version(str(highest)))

    # -- resolution --------------------------------------------------------

    def resolve_dependencies(self, config: SessionConfig, request: DependencyRequest) -> DependencyResult:
        root = request.root
        collect_exceptions: List[Exception] = []
        if root is None:
            collected = self.collect_dependencies(config, request.collect_request)
            root = collected.root
            collect_exceptions = collected.exceptions
        result = DependencyResult(request, root, collect_exceptions=collect_exceptions)

        nodes: List[DependencyNode] = []

        def accept(node: DependencyNode, parents) -> bool:
            if not parents:
                return True
            if node.winner is not None:
                return False
            if request.filter is None or request.filter(node, parents):
                nodes.append(node)
            return True

        root.visit(accept)

        repositories = tuple(request.collect_request.repositories) if request.collect_request else ()
        context = request.collect_request.request_context if request.collect_request else ""
        artifact_results = self.resolve_artifacts(
            config, [ArtifactRequest(node.artifact, repositories, context) for node in nodes]
        )
        for node, artifact_result in zip(nodes, artifact_results):
            node.file = artifact_result.file
        result.artifact_results = artifact_results

        if any(not r.is_resolved for r in artifact_results):
            raise ResolutionError(result, ArtifactResolutionError(artifact_results))
        return result

    def resolve_artifacts(self, config: SessionConfig, requests: Sequence[ArtifactRequest]) -> List[ArtifactResult]:
        results = []
        for request in requests:
            path, repository, errors = self._fetch_artifact(config, request.repositories, request.artifact)
            results.append(ArtifactResult(request, file=path, repository=repository, exceptions=errors))
        return results

    # -- metadata ----------------------------------------------------------

    def resolve_version_range(self, config: SessionConfig, request: VersionRangeRequest) -> VersionRangeResult:
        try:
            constraint = VersionConstraint.parse(request.artifact.version)
        except ValueError as e:
            raise VersionRangeError(request.artifact, e) from e
        if not constraint.is_range:
            return VersionRangeResult(request, [constraint.version])

        versions: List[str] = []
        for repository in request.repositories:
            try:
                path = self._fetch_metadata(config, repository, request.artifact.group_id, request.artifact.artifact_id)
                if path is not None:
                    versions.extend(read_metadata(path).versions)
            except (TransportError, MetadataParseError) as e:
                logger.warning(f"Skipping metadata of {request.artifact.ga} from {repository.id}: {e}")
        return VersionRangeResult(request, constraint.filter(versions))

    def resolve_metadata(self, config: SessionConfig, requests: Sequence[MetadataRequest]) -> List[MetadataResult]:
        results = []
        for request in requests:
            try:
                path = self._fetch_metadata(config, request.repository, request.group_id, request.artifact_id)
                results.append(MetadataResult(request, file=path))
            except TransportError as e:
                logger.warning(f"Failed to fetch metadata of {request.group_id} from {request.repository.id}: {e}")
                results.append(MetadataResult(request, exception=e))
        return results

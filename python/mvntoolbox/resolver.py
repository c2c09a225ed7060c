"""Orchestrates loading, collection, resolution and version queries over an engine."""

import logging
from dataclasses import replace
from typing import Collection, Iterable, List, Optional, Sequence, Union

from .engine import (
    UPDATE_POLICY_ALWAYS,
    ArtifactRequest,
    ArtifactResult,
    CollectRequest,
    CollectResult,
    DependencyRequest,
    DependencyResult,
    DescriptorRequest,
    ArtifactDescriptor,
    MetadataRequest,
    ResolverEngine,
    SessionConfig,
    VersionRangeRequest,
)
from .errors import (
    ArtifactResolutionError,
    CoordinateParseError,
    CoordinateResolutionError,
    ResolutionError,
)
from .merger import import_boms, merge_dependencies
from .metadata import read_metadata
from .models import Coordinate, Dependency, DependencyNode, RemoteRepository
from .roots import PreparedRoot, RawRoot, ResolutionRoot
from .scopes import ResolutionScope, Scopes
from .version import MavenVersion

logger = logging.getLogger(__name__)

CTX_TOOLBOX = "toolbox"

RootLike = Union[ResolutionRoot, Coordinate, Dependency, str]


class ToolboxResolver:
    """
    Resolution front end sitting on top of a ``ResolverEngine``.

    Holds only immutable state: the engine, the base session config and the
    remote repositories. Every operation derives its own session config, so a
    single instance can serve concurrent callers.
    """

    def __init__(
        self,
        engine: ResolverEngine,
        remote_repositories: Sequence[RemoteRepository],
        session: Optional[SessionConfig] = None,
    ):
        if engine is None:
            raise ValueError("engine is required")
        if remote_repositories is None:
            raise ValueError("remote_repositories is required")
        self.engine = engine
        self.remote_repositories = tuple(remote_repositories)
        self.session = session or SessionConfig()

    @staticmethod
    def parse_remote_repository(spec: str) -> RemoteRepository:
        """Parse ``url``, ``id::url`` or ``id::type::url``."""
        return RemoteRepository.parse(spec)

    def read_artifact_descriptor(
        self, artifact: Coordinate, session: Optional[SessionConfig] = None
    ) -> ArtifactDescriptor:
        request = DescriptorRequest(artifact, self.remote_repositories, CTX_TOOLBOX)
        return self.engine.read_artifact_descriptor(session or self.session, request)

    def import_boms(self, boms: Iterable[Optional[str]]) -> List[Dependency]:
        """Managed dependencies of all BOMs; the first BOM declaring an artifact wins."""
        session = replace(self.session, ignore_missing_descriptor=False, ignore_invalid_descriptor=False)
        return import_boms(
            boms,
            lambda bom: self.read_artifact_descriptor(bom, session).managed_dependencies,
        )

    @staticmethod
    def parse_gav(gav: str, managed_dependencies: Optional[Sequence[Dependency]] = None) -> Coordinate:
        """
        Parse a coordinate, falling back to dependency management for ``group:artifact``.

        Raises:
            CoordinateResolutionError: If the literal has no version and no
                managed dependency supplies one
        """
        try:
            return Coordinate.parse(gav)
        except CoordinateParseError:
            if managed_dependencies is None:
                raise
            for dependency in managed_dependencies:
                if dependency.coordinate.ga == gav:
                    logger.debug(f"Using managed version {dependency.coordinate.version} for {gav}")
                    return dependency.coordinate
            raise CoordinateResolutionError(gav) from None

    def load_gav(self, gav: str, boms: Collection[Optional[str]] = ()) -> PreparedRoot:
        managed_dependencies = self.import_boms(boms)
        artifact = self.parse_gav(gav, managed_dependencies)
        return self.load_root(RawRoot(artifact, managed_dependencies=managed_dependencies))

    def load_root(self, root: RootLike) -> PreparedRoot:
        """
        Bring a root to the prepared state.

        A prepared root is returned unchanged. A raw root has its descriptor
        read; dependency data supplied by the caller dominates the
        descriptor's.
        """
        root = self._as_root(root)
        if root.is_prepared:
            return root
        if root.needs_loading:
            logger.debug(f"Loading descriptor of {root.artifact}")
            descriptor = self.read_artifact_descriptor(root.artifact)
            root = root.loaded(
                merge_dependencies(root.dependencies, descriptor.dependencies),
                merge_dependencies(root.managed_dependencies, descriptor.managed_dependencies),
            )
        return root.prepared()

    @staticmethod
    def _as_root(root: RootLike) -> ResolutionRoot:
        if isinstance(root, ResolutionRoot):
            return root
        if isinstance(root, Dependency):
            return RawRoot(root.coordinate)
        if isinstance(root, Coordinate):
            return RawRoot(root)
        return RawRoot(Coordinate.parse(root))

    def collect(
        self,
        resolution_scope: ResolutionScope,
        root: Union[Coordinate, Dependency],
        dependencies: Sequence[Dependency],
        managed_dependencies: Sequence[Dependency],
        verbose: bool = False,
    ) -> CollectResult:
        """
        Collect the dependency graph of ``root`` in the given scope.

        Unless verbose, or the scope is TEST, direct children whose scope is
        not visible in ``resolution_scope`` are pruned together with their
        subtrees.
        """
        session = replace(self.session, verbose=verbose) if verbose else self.session
        return self._do_collect(session, resolution_scope, root, dependencies, managed_dependencies, verbose)

    def collect_root(self, resolution_scope: ResolutionScope, root: PreparedRoot, verbose: bool = False) -> CollectResult:
        return self.collect(resolution_scope, root.artifact, root.dependencies, root.managed_dependencies, verbose)

    def _build_collect_request(
        self,
        resolution_scope: ResolutionScope,
        root: Union[Coordinate, Dependency],
        dependencies: Sequence[Dependency],
        managed_dependencies: Sequence[Dependency],
    ) -> CollectRequest:
        if resolution_scope is None:
            raise ValueError("resolution_scope is required")
        if root is None:
            raise ValueError("root is required")
        root_dependency = root if isinstance(root, Dependency) else None
        root_artifact = root.coordinate if isinstance(root, Dependency) else root
        return CollectRequest(
            root_artifact=root_artifact,
            root_dependency=root_dependency,
            dependencies=[
                d for d in dependencies or ()
                if not resolution_scope.eliminate_test or d.scope != Scopes.TEST
            ],
            managed_dependencies=list(managed_dependencies or ()),
            repositories=list(self.remote_repositories),
            request_context=CTX_TOOLBOX,
        )

    def _do_collect(
        self,
        session: SessionConfig,
        resolution_scope: ResolutionScope,
        root: Union[Coordinate, Dependency],
        dependencies: Sequence[Dependency],
        managed_dependencies: Sequence[Dependency],
        verbose: bool,
    ) -> CollectResult:
        request = self._build_collect_request(resolution_scope, root, dependencies, managed_dependencies)
        logger.debug(f"Collecting scope: {resolution_scope.name}")
        logger.debug(f"Collecting {request}")

        result = self.engine.collect_dependencies(session, request)
        if not verbose and resolution_scope is not ResolutionScope.TEST:
            self._prune_direct_children(result.root, resolution_scope)
        return result

    @staticmethod
    def _prune_direct_children(root: DependencyNode, resolution_scope: ResolutionScope) -> None:
        kept = [child for child in root.children if child.scope in resolution_scope.direct_include]
        removed = len(root.children) - len(kept)
        if removed:
            logger.debug(f"Pruned {removed} direct dependencies not visible in scope {resolution_scope.name}")
            root.children[:] = kept

    def resolve(
        self,
        resolution_scope: ResolutionScope,
        root: Union[Coordinate, Dependency],
        dependencies: Sequence[Dependency],
        managed_dependencies: Sequence[Dependency],
    ) -> DependencyResult:
        """
        Collect and resolve the graph, then resolve the root artifact itself.

        The resolved root becomes the graph root and its artifact result is
        placed first. A root that cannot be resolved fails the whole call.

        Raises:
            ResolutionError: If any accepted node or the root cannot be resolved
        """
        session = self.session
        collected = self._do_collect(session, resolution_scope, root, dependencies, managed_dependencies, False)
        dependency_request = DependencyRequest(
            collect_request=collected.request,
            root=collected.root,
            filter=resolution_scope.dependency_filter,
        )
        logger.debug(f"Resolving scope: {resolution_scope.name}")
        logger.debug(f"Resolving {dependency_request}")
        result = self.engine.resolve_dependencies(session, dependency_request)
        result.collect_exceptions.extend(collected.exceptions)

        root_artifact = collected.request.root_artifact
        try:
            root_result = self.resolve_artifacts([root_artifact])[0]
        except ArtifactResolutionError as e:
            raise ResolutionError(result, e) from e

        new_root = DependencyNode(Dependency(root_result.artifact, ""), file=root_result.file)
        new_root.children = result.root.children
        result.root = new_root
        result.artifact_results.insert(0, root_result)
        logger.info(
            f"Resolved {root_artifact} in scope {resolution_scope.name}: "
            f"{len(result.artifact_results)} artifacts"
        )
        return result

    def resolve_root(self, resolution_scope: ResolutionScope, root: PreparedRoot) -> DependencyResult:
        return self.resolve(resolution_scope, root.artifact, root.dependencies, root.managed_dependencies)

    def resolve_artifacts(self, artifacts: Collection[Coordinate]) -> List[ArtifactResult]:
        """
        Locate the files of the given artifacts.

        Raises:
            ArtifactResolutionError: If any artifact cannot be located
        """
        if artifacts is None:
            raise ValueError("artifacts is required")
        requests = [ArtifactRequest(a, self.remote_repositories, CTX_TOOLBOX) for a in artifacts]
        results = self.engine.resolve_artifacts(self.session, requests)
        if any(not r.is_resolved for r in results):
            raise ArtifactResolutionError(results)
        return results

    def find_newest_version(self, artifact: Coordinate, allow_snapshots: bool) -> Optional[MavenVersion]:
        """
        Newest known version of the artifact, or None.

        With ``allow_snapshots`` False the highest non-snapshot version is
        returned; None when only snapshots exist.
        """
        request = VersionRangeRequest(artifact.with_version("[0,)"), self.remote_repositories, CTX_TOOLBOX)
        result = self.engine.resolve_version_range(self.session, request)
        highest = result.highest_version
        if highest is None:
            return None
        if allow_snapshots or not highest.is_snapshot:
            return highest
        for version in reversed(result.versions):
            if not version.is_snapshot:
                return version
        return None

    def list_available_plugins(self, group_ids: Collection[str]) -> List[Coordinate]:
        """
        Plugins published under the given groups, each at its newest release.

        Group metadata is always refreshed from the remote repositories.
        Plugins without any non-snapshot release are skipped.
        """
        session = replace(self.session, update_policy=UPDATE_POLICY_ALWAYS)
        requests = [
            MetadataRequest(group_id, repository, request_context=CTX_TOOLBOX)
            for group_id in group_ids
            for repository in self.remote_repositories
        ]

        processed = set()
        result: List[Coordinate] = []
        for metadata_result in self.engine.resolve_metadata(session, requests):
            if not metadata_result.is_resolved:
                continue
            group_id = metadata_result.request.group_id
            metadata = read_metadata(metadata_result.file)
            for plugin in metadata.plugins:
                ga = f"{group_id}:{plugin.artifact_id}"
                if ga in processed:
                    continue
                processed.add(ga)
                blueprint = Coordinate(group_id, plugin.artifact_id, "0", extension="jar")
                newest = self.find_newest_version(blueprint, False)
                if newest is None:
                    logger.debug(f"Skipping plugin {ga}: no released version")
                    continue
                result.append(blueprint.with_version(str(newest)))
        return result

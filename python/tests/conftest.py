"""Shared fixtures: an in-memory engine standing in for a real repository system."""

from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from mvntoolbox.engine import (
    ArtifactDescriptor,
    ArtifactRequest,
    ArtifactResult,
    CollectResult,
    DependencyResult,
    MetadataResult,
    ResolverEngine,
    VersionRangeResult,
)
from mvntoolbox.errors import ArtifactResolutionError, DescriptorFetchError, ResolutionError
from mvntoolbox.models import Coordinate, Dependency, DependencyNode, RemoteRepository
from mvntoolbox.version import MavenVersion


def dep(gav: str, scope: str = "compile", optional: bool = False) -> Dependency:
    return Dependency(Coordinate.parse(gav), scope, optional)


class FakeEngine(ResolverEngine):
    """Engine double recording every call and serving canned answers."""

    def __init__(self):
        self.descriptors: Dict[Coordinate, ArtifactDescriptor] = {}
        self.transitive: Dict[Coordinate, List[Dependency]] = {}
        self.files: Dict[Coordinate, Path] = {}
        self.versions: Dict[str, List[str]] = {}
        self.metadata: Dict[Tuple[str, str], Path] = {}
        self.calls: List[tuple] = []

    def read_artifact_descriptor(self, config, request):
        self.calls.append(('descriptor', config, request))
        if request.artifact not in self.descriptors:
            raise DescriptorFetchError(request.artifact, FileNotFoundError(f"no POM for {request.artifact}"))
        return self.descriptors[request.artifact]

    def collect_dependencies(self, config, request):
        self.calls.append(('collect', config, request))
        root = DependencyNode(request.root_dependency or Dependency(request.root_artifact, ""))
        for dependency in request.dependencies:
            node = DependencyNode(dependency)
            for child in self.transitive.get(dependency.coordinate, []):
                node.add_child(DependencyNode(child))
            root.add_child(node)
        return CollectResult(request, root)

    def resolve_dependencies(self, config, request):
        self.calls.append(('resolve', config, request))
        nodes = []

        def accept(node, parents):
            if parents and (request.filter is None or request.filter(node, parents)):
                nodes.append(node)
            return True

        request.root.visit(accept)
        results = self.resolve_artifacts(config, [ArtifactRequest(n.artifact) for n in nodes])
        for node, result in zip(nodes, results):
            node.file = result.file
        dependency_result = DependencyResult(request, request.root, results)
        if any(not r.is_resolved for r in results):
            raise ResolutionError(dependency_result, ArtifactResolutionError(results))
        return dependency_result

    def resolve_artifacts(self, config, requests):
        self.calls.append(('artifacts', config, list(requests)))
        results = []
        for request in requests:
            path = self.files.get(request.artifact)
            errors = [] if path else [FileNotFoundError(str(request.artifact))]
            results.append(ArtifactResult(request, file=path, exceptions=errors))
        return results

    def resolve_version_range(self, config, request):
        self.calls.append(('range', config, request))
        versions = self.versions.get(request.artifact.ga, [])
        return VersionRangeResult(request, sorted(MavenVersion(v) for v in versions))

    def resolve_metadata(self, config, requests):
        self.calls.append(('metadata', config, list(requests)))
        return [
            MetadataResult(r, file=self.metadata.get((r.group_id, r.repository.id)))
            for r in requests
        ]

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def repositories():
    return [
        RemoteRepository("central", "default", "https://repo.example/maven2"),
        RemoteRepository("mirror", "default", "https://mirror.example/maven2"),
    ]

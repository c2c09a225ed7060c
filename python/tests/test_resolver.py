"""Tests for ToolboxResolver against an in-memory engine."""

import pytest

from conftest import dep
from mvntoolbox.engine import ArtifactDescriptor, SessionConfig
from mvntoolbox.errors import (
    ArtifactResolutionError,
    CoordinateParseError,
    CoordinateResolutionError,
    DescriptorFetchError,
    ResolutionError,
)
from mvntoolbox.models import Coordinate
from mvntoolbox.resolver import CTX_TOOLBOX, ToolboxResolver
from mvntoolbox.roots import PreparedRoot, RawRoot
from mvntoolbox.scopes import ResolutionScope

ROOT = Coordinate.parse("org.example:app:1.0")

PLUGIN_METADATA = """<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <plugins>
{plugins}
  </plugins>
</metadata>
"""


def plugin_metadata(*artifact_ids):
    entries = "\n".join(
        f"    <plugin><name>{a}</name><prefix>{a}</prefix><artifactId>{a}</artifactId></plugin>"
        for a in artifact_ids
    )
    return PLUGIN_METADATA.format(plugins=entries)


@pytest.fixture
def resolver(engine, repositories):
    return ToolboxResolver(engine, repositories)


class TestConstruction:
    """Tests for resolver construction."""

    def test_requires_engine(self, repositories):
        with pytest.raises(ValueError):
            ToolboxResolver(None, repositories)

    def test_requires_repositories(self, engine):
        with pytest.raises(ValueError):
            ToolboxResolver(engine, None)

    def test_default_session(self, resolver):
        assert resolver.session == SessionConfig()

    def test_parse_remote_repository(self):
        repo = ToolboxResolver.parse_remote_repository("central::https://example/repo")
        assert (repo.id, repo.type, repo.url) == ("central", "default", "https://example/repo")


class TestParseGav:
    """Tests for coordinate parsing with managed fallback."""

    def test_full_coordinate(self):
        assert ToolboxResolver.parse_gav("g:a:1.0") == Coordinate("g", "a", "1.0")

    def test_falls_back_to_managed(self):
        managed = [dep("org.other:x:9.9"), dep("g:a:2.5")]
        assert ToolboxResolver.parse_gav("g:a", managed) == Coordinate("g", "a", "2.5")

    def test_no_managed_match(self):
        with pytest.raises(CoordinateResolutionError):
            ToolboxResolver.parse_gav("g:a", [dep("org.other:x:9.9")])

    def test_without_managed_propagates_parse_error(self):
        with pytest.raises(CoordinateParseError):
            ToolboxResolver.parse_gav("g:a")


class TestLoading:
    """Tests for root loading and BOM import."""

    def test_prepared_root_is_returned_unchanged(self, resolver, engine):
        root = PreparedRoot(ROOT, (dep("g:a:1.0"),))
        assert resolver.load_root(root) is root
        assert engine.calls_named('descriptor') == []

    def test_raw_root_merges_caller_data_over_descriptor(self, resolver, engine):
        engine.descriptors[ROOT] = ArtifactDescriptor(
            ROOT,
            dependencies=(dep("g:a:1.0"), dep("g:b:1.0")),
            managed_dependencies=(dep("g:m:1.0"),),
        )
        loaded = resolver.load_root(RawRoot(ROOT, dependencies=[dep("g:a:2.0", "runtime")]))

        assert loaded.is_prepared
        assert [str(d.coordinate) for d in loaded.dependencies] == ["g:a:jar:2.0", "g:b:jar:1.0"]
        assert loaded.dependencies[0].scope == "runtime"
        assert [str(d.coordinate) for d in loaded.managed_dependencies] == ["g:m:jar:1.0"]

    def test_string_root(self, resolver, engine):
        engine.descriptors[ROOT] = ArtifactDescriptor(ROOT, dependencies=(dep("g:a:1.0"),))
        loaded = resolver.load_root("org.example:app:1.0")
        assert loaded.artifact == ROOT
        assert len(loaded.dependencies) == 1

    def test_descriptor_failure_propagates(self, resolver):
        with pytest.raises(DescriptorFetchError):
            resolver.load_root(RawRoot(ROOT))

    def test_descriptor_request_carries_repositories(self, resolver, engine, repositories):
        engine.descriptors[ROOT] = ArtifactDescriptor(ROOT)
        resolver.load_root(ROOT)
        _, _, request = engine.calls_named('descriptor')[0]
        assert request.artifact == ROOT
        assert list(request.repositories) == repositories
        assert request.request_context == CTX_TOOLBOX

    def test_load_gav_uses_bom_managed_version(self, resolver, engine):
        bom = Coordinate.parse("org.example:bom:pom:1.0")
        engine.descriptors[bom] = ArtifactDescriptor(bom, managed_dependencies=(dep("g:lib:3.0"),))
        lib = Coordinate.parse("g:lib:3.0")
        engine.descriptors[lib] = ArtifactDescriptor(lib, dependencies=(dep("g:x:1.0"),))

        root = resolver.load_gav("g:lib", ["org.example:bom:pom:1.0"])

        assert root.artifact == lib
        assert [str(d.coordinate) for d in root.dependencies] == ["g:x:jar:1.0"]
        assert [str(d.coordinate) for d in root.managed_dependencies] == ["g:lib:jar:3.0"]

    def test_import_boms_never_ignores_descriptor_errors(self, engine, repositories):
        lenient = SessionConfig(ignore_missing_descriptor=True, ignore_invalid_descriptor=True)
        resolver = ToolboxResolver(engine, repositories, lenient)
        bom = Coordinate.parse("org.example:bom:pom:1.0")
        engine.descriptors[bom] = ArtifactDescriptor(bom)

        resolver.import_boms(["org.example:bom:pom:1.0"])

        _, config, _ = engine.calls_named('descriptor')[0]
        assert not config.ignore_missing_descriptor
        assert not config.ignore_invalid_descriptor
        assert resolver.session is lenient


class TestCollect:
    """Tests for collection and direct child pruning."""

    DEPENDENCIES = [
        dep("g:c:1.0", "compile"),
        dep("g:r:1.0", "runtime"),
        dep("g:p:1.0", "provided"),
        dep("g:t:1.0", "test"),
    ]

    def _children(self, result):
        return [child.artifact.artifact_id for child in result.root.children]

    def test_compile_keeps_only_compile_children(self, resolver):
        result = resolver.collect(ResolutionScope.COMPILE, ROOT, self.DEPENDENCIES, [])
        assert self._children(result) == ["c"]

    def test_runtime_keeps_only_runtime_children(self, resolver):
        result = resolver.collect(ResolutionScope.RUNTIME, ROOT, self.DEPENDENCIES, [])
        assert self._children(result) == ["r"]

    def test_none_prunes_everything(self, resolver):
        result = resolver.collect(ResolutionScope.NONE, ROOT, self.DEPENDENCIES, [])
        assert self._children(result) == []

    def test_test_scope_keeps_all_children(self, resolver, engine):
        result = resolver.collect(ResolutionScope.TEST, ROOT, self.DEPENDENCIES, [])
        assert self._children(result) == ["c", "r", "p", "t"]
        _, _, request = engine.calls_named('collect')[0]
        assert len(request.dependencies) == 4

    def test_test_dependencies_eliminated_before_collecting(self, resolver, engine):
        resolver.collect(ResolutionScope.COMPILE_PLUS_RUNTIME, ROOT, self.DEPENDENCIES, [dep("g:m:1.0")])
        _, _, request = engine.calls_named('collect')[0]
        assert [d.coordinate.artifact_id for d in request.dependencies] == ["c", "r", "p"]
        assert [d.coordinate.artifact_id for d in request.managed_dependencies] == ["m"]
        assert request.root_artifact == ROOT
        assert request.root_dependency is None
        assert request.request_context == CTX_TOOLBOX

    def test_verbose_skips_pruning_and_isolates_session(self, resolver, engine):
        result = resolver.collect(ResolutionScope.COMPILE, ROOT, self.DEPENDENCIES, [], verbose=True)
        assert self._children(result) == ["c", "r", "p"]
        _, config, _ = engine.calls_named('collect')[0]
        assert config.verbose
        assert not resolver.session.verbose

        resolver.collect(ResolutionScope.COMPILE, ROOT, self.DEPENDENCIES, [])
        _, config, _ = engine.calls_named('collect')[1]
        assert not config.verbose

    def test_pruning_removes_subtrees(self, resolver, engine):
        engine.transitive[Coordinate.parse("g:r:1.0")] = [dep("g:deep:1.0", "runtime")]
        result = resolver.collect(ResolutionScope.COMPILE, ROOT, self.DEPENDENCIES, [])
        ids = [node.artifact.artifact_id for node in result.root.walk()]
        assert "deep" not in ids

    def test_dependency_root(self, resolver, engine):
        root = dep("org.example:app:1.0", "compile")
        resolver.collect(ResolutionScope.COMPILE, root, [], [])
        _, _, request = engine.calls_named('collect')[0]
        assert request.root_dependency == root
        assert request.root_artifact == ROOT

    def test_collect_root(self, resolver):
        prepared = PreparedRoot(ROOT, tuple(self.DEPENDENCIES))
        result = resolver.collect_root(ResolutionScope.RUNTIME, prepared)
        assert self._children(result) == ["r"]

    def test_scope_is_required(self, resolver):
        with pytest.raises(ValueError):
            resolver.collect(None, ROOT, [], [])


class TestResolve:
    """Tests for full resolution."""

    @pytest.fixture
    def files(self, engine, tmp_path):
        for gav in ("org.example:app:1.0", "g:c:1.0", "g:x:1.0", "g:r:1.0"):
            coordinate = Coordinate.parse(gav)
            path = tmp_path / f"{coordinate.artifact_id}.jar"
            path.write_bytes(b"jar")
            engine.files[coordinate] = path
        engine.transitive[Coordinate.parse("g:c:1.0")] = [dep("g:x:1.0", "compile")]
        return tmp_path

    def test_root_result_is_first(self, resolver, files):
        result = resolver.resolve(
            ResolutionScope.COMPILE, ROOT, [dep("g:c:1.0"), dep("g:r:1.0", "runtime")], []
        )
        assert result.artifact_results[0].artifact == ROOT
        assert [r.artifact.artifact_id for r in result.artifact_results] == ["app", "c", "x"]
        assert result.root.artifact == ROOT
        assert result.root.scope == ""
        assert result.root.file == files / "app.jar"
        assert [c.artifact.artifact_id for c in result.root.children] == ["c"]

    def test_result_count_matches_accepted_nodes(self, resolver, files):
        result = resolver.resolve(
            ResolutionScope.COMPILE, ROOT, [dep("g:c:1.0"), dep("g:r:1.0", "runtime")], []
        )
        accepted = [n for n in result.root.walk() if n is not result.root]
        assert len(result.artifact_results) == 1 + len(accepted)
        assert all(n.file is not None for n in accepted)

    def test_filter_is_passed_to_engine(self, resolver, engine, files):
        resolver.resolve(ResolutionScope.RUNTIME, ROOT, [dep("g:r:1.0", "runtime")], [])
        _, _, request = engine.calls_named('resolve')[0]
        assert request.filter is ResolutionScope.RUNTIME.dependency_filter
        assert request.collect_request.root_artifact == ROOT

    def test_resolve_uses_non_verbose_session(self, engine, repositories, files):
        resolver = ToolboxResolver(engine, repositories, SessionConfig(verbose=False))
        resolver.resolve(ResolutionScope.COMPILE, ROOT, [dep("g:c:1.0")], [])
        for _, config, _ in engine.calls:
            assert not config.verbose

    def test_missing_root_file_fails(self, resolver, engine, files):
        del engine.files[ROOT]
        with pytest.raises(ResolutionError) as excinfo:
            resolver.resolve(ResolutionScope.COMPILE, ROOT, [dep("g:c:1.0")], [])
        assert type(excinfo.value) is ResolutionError
        assert isinstance(excinfo.value.cause, ArtifactResolutionError)

    def test_missing_dependency_file_fails(self, resolver, engine, files):
        del engine.files[Coordinate.parse("g:x:1.0")]
        with pytest.raises(ResolutionError):
            resolver.resolve(ResolutionScope.COMPILE, ROOT, [dep("g:c:1.0")], [])

    def test_resolve_root(self, resolver, files):
        prepared = PreparedRoot(ROOT, (dep("g:c:1.0"), dep("g:t:1.0", "test")))
        result = resolver.resolve_root(ResolutionScope.COMPILE, prepared)
        assert [r.artifact.artifact_id for r in result.artifact_results] == ["app", "c", "x"]


class TestResolveArtifacts:
    """Tests for plain artifact resolution."""

    def test_resolves_in_order(self, resolver, engine, tmp_path):
        a = Coordinate.parse("g:a:1.0")
        b = Coordinate.parse("g:b:1.0")
        engine.files[a] = tmp_path / "a.jar"
        engine.files[b] = tmp_path / "b.jar"
        results = resolver.resolve_artifacts([b, a])
        assert [r.artifact for r in results] == [b, a]

    def test_any_failure_raises(self, resolver, engine, tmp_path):
        a = Coordinate.parse("g:a:1.0")
        engine.files[a] = tmp_path / "a.jar"
        with pytest.raises(ArtifactResolutionError) as excinfo:
            resolver.resolve_artifacts([a, Coordinate.parse("g:missing:1.0")])
        assert "g:missing:jar:1.0" in str(excinfo.value)
        assert len(excinfo.value.results) == 2

    def test_empty(self, resolver):
        assert resolver.resolve_artifacts([]) == []


class TestFindNewestVersion:
    """Tests for newest version lookup."""

    ARTIFACT = Coordinate.parse("g:a:0")

    def test_release_only(self, resolver, engine):
        engine.versions["g:a"] = ["1.0", "1.2-SNAPSHOT", "1.1-SNAPSHOT"]
        assert str(resolver.find_newest_version(self.ARTIFACT, False)) == "1.0"

    def test_snapshots_allowed(self, resolver, engine):
        engine.versions["g:a"] = ["1.0", "1.2-SNAPSHOT", "1.1-SNAPSHOT"]
        assert str(resolver.find_newest_version(self.ARTIFACT, True)) == "1.2-SNAPSHOT"

    def test_highest_release_is_returned_directly(self, resolver, engine):
        engine.versions["g:a"] = ["1.0", "2.0", "1.5"]
        assert str(resolver.find_newest_version(self.ARTIFACT, False)) == "2.0"

    def test_only_snapshots(self, resolver, engine):
        engine.versions["g:a"] = ["1.0-SNAPSHOT"]
        assert resolver.find_newest_version(self.ARTIFACT, False) is None

    def test_no_versions(self, resolver):
        assert resolver.find_newest_version(self.ARTIFACT, True) is None

    def test_queries_open_range(self, resolver, engine):
        resolver.find_newest_version(Coordinate.parse("g:a:jar:tests:1.0"), False)
        _, _, request = engine.calls_named('range')[0]
        assert request.artifact.version == "[0,)"
        assert request.artifact.classifier == "tests"


class TestListAvailablePlugins:
    """Tests for plugin discovery from group metadata."""

    GROUP = "org.apache.maven.plugins"

    @pytest.fixture
    def metadata(self, engine, tmp_path):
        central = tmp_path / "central.xml"
        central.write_text(plugin_metadata("maven-compiler-plugin", "maven-surefire-plugin"))
        mirror = tmp_path / "mirror.xml"
        mirror.write_text(plugin_metadata("maven-compiler-plugin", "maven-jar-plugin"))
        engine.metadata[(self.GROUP, "central")] = central
        engine.metadata[(self.GROUP, "mirror")] = mirror
        engine.versions[f"{self.GROUP}:maven-compiler-plugin"] = ["3.10.1", "3.11.0"]
        engine.versions[f"{self.GROUP}:maven-surefire-plugin"] = ["3.0.0", "3.1.0-SNAPSHOT"]
        engine.versions[f"{self.GROUP}:maven-jar-plugin"] = ["4.0.0-SNAPSHOT"]

    def test_lists_newest_releases(self, resolver, metadata):
        plugins = resolver.list_available_plugins([self.GROUP])
        assert [str(p) for p in plugins] == [
            "org.apache.maven.plugins:maven-compiler-plugin:jar:3.11.0",
            "org.apache.maven.plugins:maven-surefire-plugin:jar:3.0.0",
        ]

    def test_deduplicates_across_repositories(self, resolver, engine, metadata):
        resolver.list_available_plugins([self.GROUP])
        queried = [request.artifact.artifact_id for _, _, request in engine.calls_named('range')]
        assert queried.count("maven-compiler-plugin") == 1

    def test_one_request_per_group_and_repository(self, resolver, engine, metadata):
        resolver.list_available_plugins([self.GROUP, "org.codehaus.mojo"])
        _, config, requests = engine.calls_named('metadata')[0]
        assert config.update_policy == "always"
        assert [(r.group_id, r.repository.id) for r in requests] == [
            (self.GROUP, "central"),
            (self.GROUP, "mirror"),
            ("org.codehaus.mojo", "central"),
            ("org.codehaus.mojo", "mirror"),
        ]
        assert resolver.session.update_policy == "daily"

    def test_unresolved_metadata_is_skipped(self, resolver):
        assert resolver.list_available_plugins(["org.nowhere"]) == []

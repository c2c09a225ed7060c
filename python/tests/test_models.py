"""Tests for coordinates, dependencies, repositories and graph nodes."""

import pytest

from mvntoolbox.errors import CoordinateParseError, RepositorySpecFormatError
from mvntoolbox.models import Coordinate, Dependency, DependencyNode, Exclusion, RemoteRepository


class TestCoordinate:
    """Tests for Coordinate parsing and identity."""

    def test_parse_gav(self):
        c = Coordinate.parse("org.slf4j:slf4j-api:2.0.9")
        assert c.group_id == "org.slf4j"
        assert c.artifact_id == "slf4j-api"
        assert c.version == "2.0.9"
        assert c.extension == "jar"
        assert c.classifier == ""

    def test_parse_with_extension(self):
        c = Coordinate.parse("org.slf4j:slf4j-bom:pom:2.0.9")
        assert c.extension == "pom"
        assert c.version == "2.0.9"

    def test_parse_with_extension_and_classifier(self):
        c = Coordinate.parse("org.example:lib:jar:sources:1.0")
        assert c.extension == "jar"
        assert c.classifier == "sources"
        assert c.version == "1.0"

    def test_parse_empty_extension_defaults_to_jar(self):
        c = Coordinate.parse("g:a::1.0")
        assert c.extension == "jar"

    @pytest.mark.parametrize("gav", ["org.slf4j:slf4j-api", "nonsense", "", "a:b:c:d:e:f"])
    def test_parse_invalid(self, gav):
        with pytest.raises(CoordinateParseError):
            Coordinate.parse(gav)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            Coordinate.parse("g:a")

    def test_versionless_id_ignores_version(self):
        a = Coordinate.parse("g:a:1.0")
        b = Coordinate.parse("g:a:2.0")
        assert a.versionless_id == b.versionless_id == "g:a::jar"
        assert a != b

    def test_versionless_id_includes_classifier_and_extension(self):
        assert Coordinate.parse("g:a:jar:tests:1.0").versionless_id != Coordinate.parse("g:a:1.0").versionless_id
        assert Coordinate.parse("g:a:pom:1.0").versionless_id != Coordinate.parse("g:a:1.0").versionless_id

    def test_str_round_trip_form(self):
        assert str(Coordinate.parse("g:a:1.0")) == "g:a:jar:1.0"
        assert str(Coordinate.parse("g:a:jar:tests:1.0")) == "g:a:jar:tests:1.0"

    def test_snapshot_detection(self):
        assert Coordinate.parse("g:a:1.0-SNAPSHOT").is_snapshot
        assert not Coordinate.parse("g:a:1.0").is_snapshot

    def test_with_version(self):
        c = Coordinate.parse("g:a:jar:tests:1.0").with_version("2.0")
        assert c == Coordinate("g", "a", "2.0", "tests", "jar")


class TestDependency:
    """Tests for Dependency normalization."""

    def test_scope_is_lowercased(self):
        d = Dependency(Coordinate.parse("g:a:1.0"), "Compile")
        assert d.scope == "compile"

    def test_scope_none_becomes_empty(self):
        d = Dependency(Coordinate.parse("g:a:1.0"), None)
        assert d.scope == ""

    def test_is_immutable(self):
        d = Dependency(Coordinate.parse("g:a:1.0"), "compile")
        with pytest.raises(Exception):
            d.scope = "test"

    def test_exclusions(self):
        d = Dependency(
            Coordinate.parse("g:a:1.0"),
            "compile",
            exclusions=[Exclusion("org.unwanted", "*")],
        )
        assert isinstance(d.exclusions, tuple)
        assert d.is_excluded(Coordinate.parse("org.unwanted:anything:3.0"))
        assert not d.is_excluded(Coordinate.parse("org.wanted:anything:3.0"))

    def test_exclusion_matches_classifier_and_extension(self):
        exclusion = Exclusion("g", "a", classifier="tests", extension="jar")
        assert exclusion.matches(Coordinate.parse("g:a:jar:tests:1.0"))
        assert not exclusion.matches(Coordinate.parse("g:a:1.0"))


class TestRemoteRepository:
    """Tests for compact repository spec parsing."""

    def test_url_only(self):
        repo = RemoteRepository.parse("https://example/repo")
        assert repo.id == "local-alias"
        assert repo.type == "default"
        assert repo.url == "https://example/repo"

    def test_id_and_url(self):
        repo = RemoteRepository.parse("central::https://example/repo")
        assert repo.id == "central"
        assert repo.type == "default"
        assert repo.url == "https://example/repo"

    def test_id_type_and_url(self):
        repo = RemoteRepository.parse("legacy::legacy::https://example/old/")
        assert repo.id == "legacy"
        assert repo.type == "legacy"
        assert repo.url == "https://example/old"

    def test_too_many_segments(self):
        with pytest.raises(RepositorySpecFormatError):
            RemoteRepository.parse("bad::a::b::c")

    def test_empty_url(self):
        with pytest.raises(RepositorySpecFormatError):
            RemoteRepository.parse("central::")


class TestDependencyNode:
    """Tests for graph nodes."""

    def _graph(self):
        root = DependencyNode(Dependency(Coordinate.parse("g:root:1.0"), ""))
        a = DependencyNode(Dependency(Coordinate.parse("g:a:1.0"), "compile"))
        b = DependencyNode(Dependency(Coordinate.parse("g:b:1.0"), "runtime"))
        c = DependencyNode(Dependency(Coordinate.parse("g:c:1.0"), "compile"))
        a.add_child(c)
        root.add_child(a)
        root.add_child(b)
        return root, a, b, c

    def test_walk_is_pre_order(self):
        root, a, b, c = self._graph()
        assert list(root.walk()) == [root, a, c, b]

    def test_visit_passes_parents(self):
        root, a, b, c = self._graph()
        seen = {}
        root.visit(lambda node, parents: seen.setdefault(node.artifact.artifact_id, parents) is not None)
        assert seen["root"] == ()
        assert seen["c"] == (root, a)

    def test_visit_can_skip_children(self):
        root, a, b, c = self._graph()
        seen = []

        def visitor(node, parents):
            seen.append(node.artifact.artifact_id)
            return node is not a

        root.visit(visitor)
        assert seen == ["root", "a", "b"]

    def test_nodes_compare_by_identity(self):
        d = Dependency(Coordinate.parse("g:a:1.0"), "compile")
        assert DependencyNode(d) != DependencyNode(d)

    def test_tree_representation(self):
        root, a, b, c = self._graph()
        text = root.get_tree_representation()
        lines = text.splitlines()
        assert lines[0] == "g:root:jar:1.0"
        assert lines[1] == "├── g:a:jar:1.0 [compile]"
        assert lines[2] == "│   └── g:c:jar:1.0 [compile]"
        assert lines[3] == "└── g:b:jar:1.0 [runtime]"

"""Core data models for mvntoolbox."""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from .errors import CoordinateParseError, RepositorySpecFormatError

# <groupId>:<artifactId>[:<extension>[:<classifier>]]:<version>
COORDINATE_PATTERN = re.compile(r'^([^: ]+):([^: ]+)(:([^: ]*)(:([^: ]+))?)?:([^: ]+)$')

DEFAULT_EXTENSION = "jar"


@dataclass(frozen=True)
class Coordinate:
    """Artifact coordinates: group, artifact, version, classifier and extension."""

    group_id: str
    artifact_id: str
    version: str
    classifier: str = ""
    extension: str = DEFAULT_EXTENSION

    @classmethod
    def parse(cls, gav: str) -> 'Coordinate':
        """
        Parse a coordinate literal.

        Args:
            gav: String in ``group:artifact[:extension[:classifier]]:version`` form

        Raises:
            CoordinateParseError: If the literal does not carry all required parts
        """
        match = COORDINATE_PATTERN.match(gav.strip()) if gav else None
        if not match:
            raise CoordinateParseError(gav)
        return cls(
            group_id=match.group(1),
            artifact_id=match.group(2),
            version=match.group(7),
            classifier=match.group(6) or "",
            extension=match.group(4) or DEFAULT_EXTENSION,
        )

    @property
    def versionless_id(self) -> str:
        """Identity used for merging and deduplication (version excluded)."""
        return f"{self.group_id}:{self.artifact_id}:{self.classifier}:{self.extension}"

    @property
    def ga(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith("SNAPSHOT")

    def with_version(self, version: str) -> 'Coordinate':
        return replace(self, version=version)

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)


@dataclass(frozen=True)
class Exclusion:
    """Exclusion pattern; ``*`` matches any value."""

    group_id: str
    artifact_id: str
    classifier: str = "*"
    extension: str = "*"

    def matches(self, coordinate: Coordinate) -> bool:
        return (
            self._match(self.group_id, coordinate.group_id)
            and self._match(self.artifact_id, coordinate.artifact_id)
            and self._match(self.classifier, coordinate.classifier)
            and self._match(self.extension, coordinate.extension)
        )

    @staticmethod
    def _match(pattern: str, value: str) -> bool:
        return pattern == "*" or pattern == value


@dataclass(frozen=True)
class Dependency:
    """A coordinate in a scope, optionally marked optional, with exclusions."""

    coordinate: Coordinate
    scope: str = ""
    optional: bool = False
    exclusions: Tuple[Exclusion, ...] = ()

    def __post_init__(self):
        """Normalize scope to lowercase and exclusions to a tuple."""
        object.__setattr__(self, 'scope', (self.scope or "").strip().lower())
        object.__setattr__(self, 'exclusions', tuple(self.exclusions or ()))

    def with_coordinate(self, coordinate: Coordinate) -> 'Dependency':
        return replace(self, coordinate=coordinate)

    def with_scope(self, scope: str) -> 'Dependency':
        return replace(self, scope=scope)

    def is_excluded(self, coordinate: Coordinate) -> bool:
        return any(exclusion.matches(coordinate) for exclusion in self.exclusions)

    def __str__(self) -> str:
        text = f"{self.coordinate} ({self.scope}"
        if self.optional:
            text += "?"
        return text + ")"


@dataclass(frozen=True)
class RemoteRepository:
    """A remote repository: id, layout type and base URL."""

    id: str
    type: str
    url: str

    DEFAULT_ID = "local-alias"
    DEFAULT_TYPE = "default"

    @classmethod
    def parse(cls, spec: str) -> 'RemoteRepository':
        """
        Parse a compact repository spec: ``url``, ``id::url`` or ``id::type::url``.

        Raises:
            RepositorySpecFormatError: If the spec has more than three segments
        """
        parts = spec.split("::")
        repo_id = cls.DEFAULT_ID
        repo_type = cls.DEFAULT_TYPE
        if len(parts) == 1:
            url = parts[0]
        elif len(parts) == 2:
            repo_id, url = parts
        elif len(parts) == 3:
            repo_id, repo_type, url = parts
        else:
            raise RepositorySpecFormatError(spec)
        if not url:
            raise RepositorySpecFormatError(spec)
        return cls(id=repo_id, type=repo_type, url=url.rstrip("/"))

    def __str__(self) -> str:
        return f"{self.id} ({self.url}, {self.type})"


@dataclass
class DependencyNode:
    """A node in a collected dependency graph."""

    dependency: Dependency
    children: List['DependencyNode'] = field(default_factory=list, compare=False)
    file: Optional[Path] = None
    premanaged_version: Optional[str] = None
    premanaged_scope: Optional[str] = None
    winner: Optional['DependencyNode'] = field(default=None, compare=False, repr=False)

    def __eq__(self, other) -> bool:
        """Equality based on object identity, nodes are graph positions."""
        return self is other

    def __hash__(self) -> int:
        return id(self)

    @property
    def artifact(self) -> Coordinate:
        return self.dependency.coordinate

    @property
    def scope(self) -> str:
        return self.dependency.scope

    def add_child(self, child: 'DependencyNode') -> None:
        self.children.append(child)

    def walk(self) -> Iterator['DependencyNode']:
        """Pre-order traversal of this node and all descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def visit(
        self,
        callback: Callable[['DependencyNode', Tuple['DependencyNode', ...]], bool],
        parents: Tuple['DependencyNode', ...] = (),
    ) -> None:
        """Pre-order traversal passing each node's parent chain; returning False skips children."""
        if callback(self, parents) is False:
            return
        for child in self.children:
            child.visit(callback, parents + (self,))

    def label(self) -> str:
        text = str(self.artifact)
        if self.scope:
            text += f" [{self.scope}]"
        if self.dependency.optional:
            text += " (optional)"
        if self.winner is not None:
            text += f" (omitted for conflict with {self.winner.artifact.version})"
        return text

    def get_tree_representation(self, prefix: str = "", is_last: bool = True, depth: int = 0) -> str:
        """Generate a tree visualization string."""
        lines = []
        connector = "└── " if is_last else "├── "
        if depth == 0:
            lines.append(self.label())
        else:
            lines.append(f"{prefix}{connector}{self.label()}")

        for i, child in enumerate(self.children):
            is_last_child = (i == len(self.children) - 1)
            if depth == 0:
                child_prefix = ""
            else:
                child_prefix = prefix + ("    " if is_last else "│   ")
            lines.append(child.get_tree_representation(child_prefix, is_last_child, depth + 1))

        return "\n".join(lines)

"""Maven version ordering and version range utilities.

Versions compare the way Maven's ComparableVersion does: numeric parts
numerically, well known qualifiers in release order
(alpha < beta < milestone < rc < snapshot < release < sp) and unknown
qualifiers lexically after them.
"""

from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, List, Optional, Union

QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]

ALIASES = {
    "ga": "",
    "final": "",
    "release": "",
    "cr": "rc",
}

SHORT_QUALIFIERS = {"a": "alpha", "b": "beta", "m": "milestone"}

RELEASE_VERSION_INDEX = str(QUALIFIERS.index(""))


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


class _IntItem:
    __slots__ = ("value",)

    def __init__(self, value: int):
        self.value = value

    def is_null(self) -> bool:
        return self.value == 0

    def compare(self, item) -> int:
        if item is None:
            return 0 if self.value == 0 else 1
        if isinstance(item, _IntItem):
            return _cmp(self.value, item.value)
        return 1

    def key(self):
        return ("i", self.value)


class _StringItem:
    __slots__ = ("value",)

    def __init__(self, value: str, followed_by_digit: bool = False):
        if followed_by_digit and len(value) == 1:
            value = SHORT_QUALIFIERS.get(value, value)
        self.value = ALIASES.get(value, value)

    @staticmethod
    def comparable_qualifier(qualifier: str) -> str:
        if qualifier in QUALIFIERS:
            return str(QUALIFIERS.index(qualifier))
        return f"{len(QUALIFIERS)}-{qualifier}"

    def is_null(self) -> bool:
        return self.value == ""

    def compare(self, item) -> int:
        if item is None:
            return _cmp(self.comparable_qualifier(self.value), RELEASE_VERSION_INDEX)
        if isinstance(item, _StringItem):
            return _cmp(self.comparable_qualifier(self.value), self.comparable_qualifier(item.value))
        return -1

    def key(self):
        return ("s", self.comparable_qualifier(self.value))


class _ListItem(list):

    def is_null(self) -> bool:
        return len(self) == 0

    def normalize(self) -> None:
        for i in range(len(self) - 1, -1, -1):
            last = self[i]
            if last.is_null():
                del self[i]
            elif not isinstance(last, _ListItem):
                break

    def compare(self, item) -> int:
        if item is None:
            if not self:
                return 0
            return self[0].compare(None)
        if isinstance(item, _IntItem):
            return -1
        if isinstance(item, _StringItem):
            return 1
        for i in range(max(len(self), len(item))):
            left = self[i] if i < len(self) else None
            right = item[i] if i < len(item) else None
            if left is None:
                result = 0 if right is None else -1 * right.compare(None)
            else:
                result = left.compare(right)
            if result != 0:
                return result
        return 0

    def key(self):
        return ("l", tuple(item.key() for item in self))


def _parse_item(is_digit: bool, buf: str):
    if is_digit:
        return _IntItem(int(buf))
    return _StringItem(buf, False)


def _parse_items(version: str) -> _ListItem:
    version = version.lower()
    items = _ListItem()
    current = items
    stack = [current]
    is_digit = False
    start = 0

    for i, c in enumerate(version):
        if c == '.' or c == '-':
            if i == start:
                current.append(_IntItem(0))
            else:
                current.append(_parse_item(is_digit, version[start:i]))
            start = i + 1
            if c == '-':
                sub = _ListItem()
                current.append(sub)
                current = sub
                stack.append(current)
        elif c.isdigit():
            if not is_digit and i > start:
                # transition like "alpha1": qualifier then a fresh sublist
                current.append(_StringItem(version[start:i], True))
                start = i
                sub = _ListItem()
                current.append(sub)
                current = sub
                stack.append(current)
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_parse_item(True, version[start:i]))
                start = i
                sub = _ListItem()
                current.append(sub)
                current = sub
                stack.append(current)
            is_digit = False

    if len(version) > start:
        current.append(_parse_item(is_digit, version[start:]))

    while stack:
        stack.pop().normalize()

    return items


@total_ordering
class MavenVersion:
    """A version string with Maven ordering semantics."""

    def __init__(self, version: str):
        self.version = version.strip()
        self._items = _parse_items(self.version)

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith("SNAPSHOT")

    def compare(self, other: 'MavenVersion') -> int:
        return self._items.compare(other._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: 'MavenVersion') -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self._items.key())

    def __str__(self) -> str:
        return self.version

    def __repr__(self) -> str:
        return f"MavenVersion({self.version!r})"


VersionLike = Union[str, MavenVersion]


def _as_version(value: VersionLike) -> MavenVersion:
    return value if isinstance(value, MavenVersion) else MavenVersion(value)


@dataclass(frozen=True)
class VersionRange:
    """A single interval; a bound of None is unbounded."""

    lower: Optional[MavenVersion]
    lower_inclusive: bool
    upper: Optional[MavenVersion]
    upper_inclusive: bool

    @classmethod
    def parse(cls, spec: str) -> 'VersionRange':
        spec = spec.strip()
        if len(spec) < 2 or spec[0] not in "[(" or spec[-1] not in "])":
            raise ValueError(f"Invalid version range {spec!r}")
        lower_inclusive = spec[0] == '['
        upper_inclusive = spec[-1] == ']'
        inner = spec[1:-1].strip()

        if ',' not in inner:
            if not lower_inclusive or not upper_inclusive or not inner:
                raise ValueError(f"Invalid version range {spec!r}, single version must be surrounded by []")
            exact = MavenVersion(inner)
            return cls(exact, True, exact, True)

        lower_text, upper_text = inner.split(',', 1)
        lower_text = lower_text.strip()
        upper_text = upper_text.strip()
        if ',' in upper_text:
            raise ValueError(f"Invalid version range {spec!r}, bounds may not contain additional ','")
        lower = MavenVersion(lower_text) if lower_text else None
        upper = MavenVersion(upper_text) if upper_text else None
        if lower is not None and upper is not None and upper < lower:
            raise ValueError(f"Invalid version range {spec!r}, lower bound must not be greater than upper bound")
        return cls(lower, lower_inclusive, upper, upper_inclusive)

    def contains(self, version: VersionLike) -> bool:
        version = _as_version(version)
        if self.lower is not None:
            comparison = version.compare(self.lower)
            if comparison < 0 or (comparison == 0 and not self.lower_inclusive):
                return False
        if self.upper is not None:
            comparison = version.compare(self.upper)
            if comparison > 0 or (comparison == 0 and not self.upper_inclusive):
                return False
        return True

    def __str__(self) -> str:
        lower = str(self.lower) if self.lower is not None else ""
        upper = str(self.upper) if self.upper is not None else ""
        if self.lower is not None and self.lower == self.upper and self.lower_inclusive and self.upper_inclusive:
            return f"[{lower}]"
        return f"{'[' if self.lower_inclusive else '('}{lower},{upper}{']' if self.upper_inclusive else ')'}"


@dataclass(frozen=True)
class VersionConstraint:
    """Either a recommended (soft) version or a union of ranges."""

    version: Optional[MavenVersion] = None
    ranges: tuple = ()

    @classmethod
    def parse(cls, spec: str) -> 'VersionConstraint':
        """
        Parse a version or a comma separated union of ranges, e.g. ``[1.0,2.0),[3.0,)``.

        Raises:
            ValueError: If the constraint is malformed
        """
        process = spec.strip()
        if not process:
            raise ValueError("Empty version constraint")
        if process[0] not in "[(":
            return cls(version=MavenVersion(process))

        ranges: List[VersionRange] = []
        while process.startswith('[') or process.startswith('('):
            close_paren = process.find(')')
            close_bracket = process.find(']')
            index = close_bracket
            if close_bracket < 0 or (0 <= close_paren < close_bracket):
                index = close_paren
            if index < 0:
                raise ValueError(f"Unbounded version range {spec!r}")
            ranges.append(VersionRange.parse(process[:index + 1]))
            process = process[index + 1:].strip()
            if process.startswith(','):
                process = process[1:].strip()
        if process:
            raise ValueError(f"Invalid version range {spec!r}, expected range after ','")
        return cls(ranges=tuple(ranges))

    @property
    def is_range(self) -> bool:
        return bool(self.ranges)

    def contains(self, version: VersionLike) -> bool:
        if self.is_range:
            return any(r.contains(version) for r in self.ranges)
        return _as_version(version) == self.version

    def filter(self, versions: Iterable[VersionLike]) -> List[MavenVersion]:
        """Matching versions in ascending order, duplicates removed."""
        matching = {}
        for version in versions:
            version = _as_version(version)
            if self.contains(version):
                matching.setdefault(version, version)
        return sorted(matching.values())


def is_version_range(spec: Optional[str]) -> bool:
    return bool(spec) and spec.strip()[:1] in ("[", "(")

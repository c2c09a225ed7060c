"""Resolution scopes, modeled on Maven 3 mojo resolution scopes."""

from enum import Enum
from typing import FrozenSet, Optional, Sequence


class Scopes:
    """Standard Maven dependency scope names."""

    COMPILE = "compile"
    PROVIDED = "provided"
    RUNTIME = "runtime"
    SYSTEM = "system"
    TEST = "test"

    ALL = frozenset({COMPILE, PROVIDED, RUNTIME, SYSTEM, TEST})


class ScopeDependencyFilter:
    """
    Transitive dependency filter applied by the engine while resolving.

    Accepts a node whose dependency scope is in ``included``. Nodes without a
    scope (the synthetic root) are always accepted. ``included=None`` accepts
    every node.
    """

    def __init__(self, included: Optional[FrozenSet[str]]):
        self.included = included

    def accept(self, node, parents: Sequence = ()) -> bool:
        if self.included is None:
            return True
        scope = node.dependency.scope if node.dependency is not None else ""
        if not scope:
            return True
        return scope in self.included

    __call__ = accept

    def __repr__(self) -> str:
        if self.included is None:
            return "ScopeDependencyFilter(*)"
        return f"ScopeDependencyFilter({sorted(self.included)})"


class ResolutionScope(Enum):
    """
    Generic resolution scope abstraction.

    Each member carries three immutable properties:

    * ``eliminate_test``: drop test scoped dependencies before collecting
    * ``direct_include``: scopes visible among direct children (non-verbose)
    * ``dependency_filter``: transitive filter handed to the engine
    """

    NONE = (True, frozenset())
    COMPILE = (True, frozenset({Scopes.COMPILE}))
    COMPILE_PLUS_RUNTIME = (True, frozenset({Scopes.COMPILE, Scopes.RUNTIME}))
    RUNTIME = (True, frozenset({Scopes.RUNTIME}))
    RUNTIME_PLUS_SYSTEM = (True, frozenset({Scopes.RUNTIME, Scopes.SYSTEM}))
    TEST = (False, Scopes.ALL)

    def __init__(self, eliminate_test: bool, direct_include: FrozenSet[str]):
        self.eliminate_test = eliminate_test
        self.direct_include = direct_include
        self.dependency_filter = ScopeDependencyFilter(
            None if not eliminate_test else direct_include
        )

    @classmethod
    def from_name(cls, name: str) -> 'ResolutionScope':
        """Look up a scope by name, accepting dashes and any case."""
        key = name.strip().upper().replace("-", "_").replace("+", "_PLUS_")
        try:
            return cls[key]
        except KeyError:
            valid = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown resolution scope {name!r}, expected one of: {valid}") from None

"""Deduplicating parameter registry shared by every builder in a chain.

The registry is an immutable value: :meth:`ParameterRegistry.insert` returns
a new instance (or the same one when the value is already bound), so two
builders branched from the same parent never see each other's parameters.

Deduplication rule
------------------
* Scalars (str, numbers, bool, date/datetime, bytes) match when they have
  the same Python type and compare equal.  ``True`` never reuses the
  placeholder of ``1``, and ``1`` never reuses that of ``1.0``.
* ``None`` matches ``None``.
* Lists and tuples match element-wise, recursively, under the same rule.
  IN-lists are usually fresh literals, so structural equality maximises reuse.
* Anything else matches only itself (identity).
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from spanql.errors import ParameterCollisionError
from spanql.schema.values import ARRAY_TYPES, SCALAR_TYPES

PLACEHOLDER_PREFIX = "param"


def values_match(left: Any, right: Any) -> bool:
    """Return ``True`` when ``left`` may reuse the placeholder bound to ``right``."""
    if left is right:
        return True
    if isinstance(left, ARRAY_TYPES) and isinstance(right, ARRAY_TYPES):
        return len(left) == len(right) and all(
            values_match(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, SCALAR_TYPES):
        return type(left) is type(right) and left == right
    return False


def param_placeholder(name: str) -> str:
    """Return the Spanner placeholder token for ``name`` (``@name``)."""
    return f"@{name}"


@dataclass(frozen=True)
class ParameterRegistry:
    """Ordered ``name → value`` map plus the last allocated index.

    Attributes:
        values: Bound values keyed by placeholder name (without ``@``).
        next_index: Index of the most recently allocated ``param<N>``.
    """

    values: Mapping[str, Any] = field(default_factory=dict)
    next_index: int = 0

    def __post_init__(self) -> None:
        # read-only view over a private copy
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def insert(self, value: Any) -> tuple[ParameterRegistry, str]:
        """Bind ``value`` and return ``(registry, placeholder_name)``.

        When an equal value is already bound its name is returned together
        with this same registry instance.
        """
        for name, existing in self.values.items():
            if values_match(value, existing):
                return self, name

        index = self.next_index + 1
        name = f"{PLACEHOLDER_PREFIX}{index}"
        return ParameterRegistry({**self.values, name: value}, index), name

    def merge(self, other: ParameterRegistry) -> ParameterRegistry:
        """Union of both maps with the larger counter.

        Raises:
            ParameterCollisionError: If one name is bound to two different values.
        """
        if other is self:
            return self
        for name, value in other.values.items():
            if name in self.values and not values_match(value, self.values[name]):
                raise ParameterCollisionError(name)
        return ParameterRegistry(
            {**self.values, **other.values},
            max(self.next_index, other.next_index),
        )

    def restrict(self, names: Iterable[str]) -> dict[str, Any]:
        """Return the bound values whose names are in ``names``, in binding order."""
        wanted = set(names)
        return {name: value for name, value in self.values.items() if name in wanted}

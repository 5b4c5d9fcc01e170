from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

from ..errors import BindingError

if TYPE_CHECKING:
    from ..models.resolved_column import ResolvedColumn

"""Pluggable column resolvers.

A resolver decides per header cell whether it claims the column (and may
rewrite the effective header value), then decides per row how the decoded cell
value lands in the record. Resolvers are referenced by a stable key registered
in a ``ResolverRegistry``; a fresh instance is created per column per sheet.
"""

__all__ = [
    "ColumnResolver",
    "ResolverFactory",
    "ResolverRegistry",
]


class ColumnResolver(ABC):
    """Base class for custom resolvers."""

    def is_column_mapped(self, header_value: Any, column_index: int) -> tuple[bool, Any]:
        """Return (claimed, effective header value). Default claims nothing."""
        return False, header_value

    @abstractmethod
    def try_resolve_cell(self, column: ResolvedColumn, value: Any, record: Any) -> bool:
        """Assign ``value`` into ``record``; return False to reject the row."""


ResolverFactory = Callable[[], ColumnResolver]


class ResolverRegistry:
    def __init__(self) -> None:
        self._factories: dict[str, ResolverFactory] = {}

    def register(self, key: str, factory: ResolverFactory) -> None:
        if not key:
            raise BindingError("resolver key must be a non-empty string")
        if not callable(factory):
            raise BindingError(f"resolver factory for '{key}' is not callable")
        self._factories[key] = factory

    def resolve(self, key: str) -> ResolverFactory:
        try:
            return self._factories[key]
        except KeyError:
            raise BindingError(f"unknown resolver: {key}") from None

    def create(self, key: str) -> ColumnResolver:
        resolver = self.resolve(key)()
        if not isinstance(resolver, ColumnResolver):
            raise BindingError(f"resolver '{key}' did not produce a ColumnResolver")
        return resolver

    def __contains__(self, key: object) -> bool:
        return key in self._factories

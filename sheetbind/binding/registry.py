from __future__ import annotations

import logging

from ..errors import BindingError
from ..models.field_binding import FieldBinding, FieldRef, type_hints
from .declare import declared_bindings

"""Binding registry: one FieldBinding per (target type, field).

Two sources feed the same ``merge``: declared metadata (``scan``, never
overrides) and fluent session calls (``merge`` with ``overwrite=True``).
"""

__all__ = [
    "BindingRegistry",
]

logger = logging.getLogger(__name__)


class BindingRegistry:
    def __init__(self) -> None:
        self._bindings: dict[FieldRef, FieldBinding] = {}
        self._scanned: set[type] = set()
        self.version = 0

    def merge(self, binding: FieldBinding, overwrite: bool = True) -> FieldBinding:
        """Insert ``binding`` or overlay it onto the existing binding for its field."""
        if binding.field is None:
            raise BindingError("binding has no field reference")
        existing = self._bindings.get(binding.field)
        if existing is None:
            existing = binding.clone()
            self._bindings[binding.field] = existing
        else:
            existing.merge_from(binding, overwrite=overwrite)
        self.version += 1
        return existing

    def scan(self, owner: type) -> None:
        """Merge declared column metadata of ``owner`` (once per type)."""
        if owner in self._scanned:
            return
        type_hints(owner)
        self._scanned.add(owner)
        declared = declared_bindings(owner)
        for binding in declared:
            self.merge(binding, overwrite=False)
        logger.debug("scanned %s declared_bindings=%d", owner.__name__, len(declared))

    def get(self, field: FieldRef) -> FieldBinding | None:
        return self._bindings.get(field)

    def bindings_for(self, owner: type) -> list[FieldBinding]:
        return [b for ref, b in self._bindings.items() if ref.owner is owner]

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, field: object) -> bool:
        return field in self._bindings

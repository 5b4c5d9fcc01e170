from __future__ import annotations

import dataclasses
import types
import typing
from dataclasses import dataclass, replace
from functools import cached_property
from typing import Any

from ..errors import BindingError

"""FieldRef / FieldBinding domain models.

A ``FieldRef`` identifies one attribute of one target type. A ``FieldBinding``
is the declared association between that field and a sheet column; at most one
binding exists per ``FieldRef`` inside a ``BindingRegistry``.
"""

__all__ = [
    "FieldRef",
    "FieldBinding",
    "field_refs",
    "type_hints",
    "unwrap_optional",
]

# Attributes considered by merge(); ``field`` is the identity key and never merged.
_MERGED_ATTRIBUTES = (
    "name",
    "index",
    "ignored",
    "use_last_non_blank",
    "resolver",
    "custom_format",
    "builtin_format",
)


def unwrap_optional(tp: Any) -> Any:
    """Return ``X`` for ``Optional[X]`` / ``X | None``, otherwise ``tp`` unchanged."""
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def type_hints(owner: type) -> dict[str, Any]:
    """Resolved annotations of ``owner``.

    Raises BindingError when an annotation names a type that cannot be resolved
    at runtime, e.g. one imported only under ``TYPE_CHECKING``.
    """
    try:
        return typing.get_type_hints(owner)
    except Exception as e:  # NameError for unknown names, TypeError for malformed hints
        raise BindingError(f"cannot resolve type annotations of {owner.__name__}: {e}") from e


@dataclass(frozen=True)
class FieldRef:
    """Identity of a field: owner type + attribute name."""

    owner: type
    name: str

    @cached_property
    def field_type(self) -> Any:
        """Static type of the field with Optional unwrapped (None if unannotated)."""
        return unwrap_optional(type_hints(self.owner).get(self.name))

    def __repr__(self) -> str:
        return f"{self.owner.__name__}.{self.name}"


def field_refs(owner: type) -> list[FieldRef]:
    """List the bindable fields of a type in declaration order.

    Dataclasses contribute their init fields, other classes their annotated
    attributes (including inherited ones, base classes first).
    """
    if dataclasses.is_dataclass(owner):
        return [FieldRef(owner, f.name) for f in dataclasses.fields(owner)]
    names: list[str] = []
    for klass in reversed(owner.__mro__):
        for name in getattr(klass, "__annotations__", {}):
            if not name.startswith("_") and name not in names:
                names.append(name)
    return [FieldRef(owner, n) for n in names]


@dataclass
class FieldBinding:
    """One declared binding for one field of one target type.

    Unset attributes are ``None`` (``index`` uses ``-1``). ``resolver`` is a key
    into a ``ResolverRegistry``.
    """

    field: FieldRef | None
    name: str | None = None
    index: int = -1
    ignored: bool | None = None
    use_last_non_blank: bool | None = None
    resolver: str | None = None
    custom_format: str | None = None
    builtin_format: int | None = None

    @staticmethod
    def _is_set(attr: str, value: Any) -> bool:
        if attr == "index":
            return value is not None and value >= 0
        return value is not None

    def merge_from(self, newer: FieldBinding, overwrite: bool = True) -> None:
        """Overlay attributes of ``newer`` onto this binding in place.

        overwrite=True: every attribute ``newer`` sets wins.
        overwrite=False: ``newer`` only fills attributes this binding leaves unset.
        Attributes unset in ``newer`` are never touched.
        """
        for attr in _MERGED_ATTRIBUTES:
            value = getattr(newer, attr)
            if not self._is_set(attr, value):
                continue
            if overwrite or not self._is_set(attr, getattr(self, attr)):
                setattr(self, attr, value)

    def clone(self, **changes: Any) -> FieldBinding:
        return replace(self, **changes)

    @property
    def has_index(self) -> bool:
        return self.index >= 0

    @property
    def is_ignored(self) -> bool:
        return self.ignored is True

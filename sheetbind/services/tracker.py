from __future__ import annotations

from typing import Any

"""Round-trip tracker: sheet name -> target type -> {row index -> record}.

Failed rows are recorded as None so a later save-tracked skips them instead
of clearing their cells.
"""

__all__ = [
    "RoundTripTracker",
]


class RoundTripTracker:
    def __init__(self) -> None:
        self._objects: dict[str, dict[type, dict[int, Any]]] = {}

    def begin(self, sheet: str, owner: type) -> None:
        """Start a fresh read pass for (sheet, owner)."""
        self._objects.setdefault(sheet, {})[owner] = {}

    def record(self, sheet: str, owner: type, row_index: int, record: Any) -> None:
        self._objects.setdefault(sheet, {}).setdefault(owner, {})[row_index] = record

    def tracked(self, sheet: str, owner: type) -> dict[int, Any]:
        """Copy of the row -> record map (empty when nothing was read)."""
        return dict(self._objects.get(sheet, {}).get(owner, {}))

    def sheets(self) -> list[str]:
        return list(self._objects)

    def clear(self) -> None:
        self._objects.clear()

    def __len__(self) -> int:
        return sum(len(rows) for types in self._objects.values() for rows in types.values())

"""Value types describing a document's ephemeral view state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

__all__ = ["CursorPosition", "CursorRange", "EphemeralState", "round_scroll", "states_equal"]

SCROLL_PRECISION = 4


@dataclass(slots=True, frozen=True)
class CursorPosition:
    """A 0-based ``line``/``ch`` location inside a document."""

    line: int = 0
    ch: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"ch": self.ch, "line": self.line}


@dataclass(slots=True, frozen=True)
class CursorRange:
    """Anchor (``from_``) to head (``to``) selection."""

    from_: CursorPosition
    to: CursorPosition

    @classmethod
    def collapsed(cls, position: CursorPosition) -> "CursorRange":
        return cls(from_=position, to=position)

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        """Return the stored layout, using ``from``/``to`` keys."""

        return {"from": self.from_.as_dict(), "to": self.to.as_dict()}


@dataclass(slots=True, frozen=True)
class EphemeralState:
    """Cursor selection and scroll offset for one document.

    ``None`` for either field means "leave that aspect alone" on restore.
    """

    cursor: Optional[CursorRange] = None
    scroll: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.cursor is not None:
            payload["cursor"] = self.cursor.as_dict()
        if self.scroll is not None:
            payload["scroll"] = self.scroll
        return payload


def round_scroll(value: float | None) -> float | None:
    """Round a live scroll offset to the precision used for storage."""

    if value is None:
        return None
    return round(float(value), SCROLL_PRECISION)


def states_equal(first: EphemeralState, second: EphemeralState) -> bool:
    """Return ``True`` when two states would restore to the same view.

    A scroll of ``0`` compares equal to no scroll at all. Callers rely on
    this: a document scrolled to the top and one with no recorded scroll are
    treated as unchanged.
    """

    if (first.cursor is None) != (second.cursor is None):
        return False
    if first.cursor is not None and second.cursor is not None:
        if first.cursor.from_.ch != second.cursor.from_.ch:
            return False
        if first.cursor.from_.line != second.cursor.from_.line:
            return False
        if first.cursor.to.ch != second.cursor.to.ch:
            return False
        if first.cursor.to.line != second.cursor.to.line:
            return False

    if bool(first.scroll) != bool(second.scroll):
        return False
    if first.scroll and first.scroll != second.scroll:
        return False
    return True

"""Conversion between :class:`EphemeralState` and front-matter fields.

Stored cursor lines count from the end of the front-matter block so the block
can grow or shrink without invalidating them; in-memory lines are absolute.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional

from .state import CursorPosition, CursorRange, EphemeralState

__all__ = ["CURSOR_KEY", "SCROLL_KEY", "decode_state", "encode_state", "merge_patch"]

LOGGER = logging.getLogger(__name__)

CURSOR_KEY = "cursor"
SCROLL_KEY = "scroll"


class _MalformedCursor(ValueError):
    pass


def decode_state(fields: Mapping[str, Any] | None, block_line_count: int) -> Optional[EphemeralState]:
    """Build an absolute-coordinate state from stored ``fields``.

    Returns ``None`` when neither key is stored, or when the stored cursor is
    malformed.
    """

    if not fields:
        return None
    raw_cursor = fields.get(CURSOR_KEY)
    raw_scroll = fields.get(SCROLL_KEY)
    if raw_cursor is None and raw_scroll is None:
        return None

    cursor: CursorRange | None = None
    if raw_cursor is not None:
        try:
            cursor = _decode_cursor(raw_cursor, block_line_count)
        except _MalformedCursor as exc:
            LOGGER.warning("Ignoring stored cursor: %s", exc)
            return None

    scroll: float | None = None
    if raw_scroll is not None:
        if isinstance(raw_scroll, bool) or not isinstance(raw_scroll, (int, float)):
            LOGGER.warning("Ignoring stored scroll value %r", raw_scroll)
        else:
            scroll = float(raw_scroll)

    if cursor is None and scroll is None:
        return None
    return EphemeralState(cursor=cursor, scroll=scroll)


def encode_state(state: EphemeralState, block_line_count: int) -> Dict[str, Any]:
    """Return the front-matter patch for ``state``; absent fields are omitted."""

    patch: Dict[str, Any] = {}
    if state.cursor is not None:
        patch[CURSOR_KEY] = {
            "from": _encode_position(state.cursor.from_, block_line_count),
            "to": _encode_position(state.cursor.to, block_line_count),
        }
    if state.scroll is not None:
        patch[SCROLL_KEY] = state.scroll
    return patch


def merge_patch(existing: MutableMapping[str, Any], patch: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Merge ``patch`` onto ``existing`` in place, keeping unrelated keys."""

    for key, value in patch.items():
        existing[key] = value
    return existing


def _encode_position(position: CursorPosition, block_line_count: int) -> Dict[str, int]:
    line = max(position.line - block_line_count, 0)
    # A position clamped onto the first body line has no meaningful column.
    ch = 0 if line == 0 else position.ch
    return {"ch": ch, "line": line}


def _decode_cursor(raw: Any, block_line_count: int) -> CursorRange:
    if not isinstance(raw, Mapping):
        raise _MalformedCursor(f"expected a mapping, got {type(raw).__name__}")
    start = _decode_position(raw.get("from"), "from")
    end = _decode_position(raw.get("to"), "to")
    return CursorRange(
        from_=CursorPosition(line=start.line + block_line_count, ch=start.ch),
        to=CursorPosition(line=end.line + block_line_count, ch=end.ch),
    )


def _decode_position(raw: Any, label: str) -> CursorPosition:
    if not isinstance(raw, Mapping):
        raise _MalformedCursor(f"'{label}' is missing or not a mapping")
    values: Dict[str, int] = {}
    for key in ("line", "ch"):
        value = raw.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise _MalformedCursor(f"'{label}.{key}' must be an integer, got {value!r}")
        if value < 0:
            raise _MalformedCursor(f"'{label}.{key}' must not be negative")
        values[key] = value
    return CursorPosition(line=values["line"], ch=values["ch"])

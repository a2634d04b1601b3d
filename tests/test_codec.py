"""Tests for converting view state to and from front-matter fields."""

from __future__ import annotations

import logging

import pytest

from cursormark.codec import decode_state, encode_state, merge_patch
from cursormark.state import CursorPosition, CursorRange, EphemeralState


def _stored_cursor(from_line: int, from_ch: int, to_line: int, to_ch: int) -> dict:
    return {"from": {"line": from_line, "ch": from_ch}, "to": {"line": to_line, "ch": to_ch}}


def test_decode_returns_none_without_state_keys() -> None:
    assert decode_state({}, 3) is None
    assert decode_state(None, 3) is None
    assert decode_state({"title": "Notes", "tags": ["a"]}, 3) is None


def test_decode_shifts_lines_by_block_size() -> None:
    fields = {"cursor": _stored_cursor(2, 5, 2, 5), "scroll": 120.5, "title": "Notes"}

    state = decode_state(fields, 3)

    assert state is not None
    assert state.cursor == CursorRange(
        from_=CursorPosition(line=5, ch=5),
        to=CursorPosition(line=5, ch=5),
    )
    assert state.scroll == 120.5


def test_decode_scroll_only() -> None:
    state = decode_state({"scroll": 42}, 4)

    assert state == EphemeralState(cursor=None, scroll=42.0)
    assert isinstance(state.scroll, float)


def test_decode_cursor_only() -> None:
    state = decode_state({"cursor": _stored_cursor(0, 0, 1, 3)}, 0)

    assert state is not None
    assert state.scroll is None
    assert state.cursor.to == CursorPosition(line=1, ch=3)


@pytest.mark.parametrize(
    "cursor",
    [
        "line 3",
        {"from": {"line": 1, "ch": 0}},
        {"from": {"line": 1}, "to": {"line": 1, "ch": 0}},
        {"from": {"line": "1", "ch": 0}, "to": {"line": 1, "ch": 0}},
        {"from": {"line": True, "ch": 0}, "to": {"line": 1, "ch": 0}},
        {"from": {"line": -1, "ch": 0}, "to": {"line": 1, "ch": 0}},
    ],
)
def test_malformed_cursor_decodes_to_none(cursor: object, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="cursormark.codec"):
        assert decode_state({"cursor": cursor, "scroll": 10.0}, 2) is None

    assert "Ignoring stored cursor" in caplog.text


def test_non_numeric_scroll_is_ignored() -> None:
    assert decode_state({"scroll": "far"}, 0) is None

    state = decode_state({"scroll": "far", "cursor": _stored_cursor(1, 1, 1, 1)}, 0)
    assert state is not None
    assert state.scroll is None


def test_encode_makes_lines_block_relative() -> None:
    state = EphemeralState(
        cursor=CursorRange(from_=CursorPosition(line=10, ch=4), to=CursorPosition(line=12, ch=7)),
        scroll=88.25,
    )

    patch = encode_state(state, 3)

    assert patch == {"cursor": _stored_cursor(7, 4, 9, 7), "scroll": 88.25}


def test_encode_clamps_positions_inside_block() -> None:
    state = EphemeralState(cursor=CursorRange.collapsed(CursorPosition(line=1, ch=0)))

    patch = encode_state(state, 3)

    assert patch == {"cursor": _stored_cursor(0, 0, 0, 0)}


def test_encode_forces_column_zero_on_first_body_line() -> None:
    state = EphemeralState(cursor=CursorRange(from_=CursorPosition(line=3, ch=9), to=CursorPosition(line=4, ch=2)))

    patch = encode_state(state, 3)

    assert patch["cursor"]["from"] == {"ch": 0, "line": 0}
    assert patch["cursor"]["to"] == {"ch": 2, "line": 1}


def test_encode_omits_absent_fields() -> None:
    assert encode_state(EphemeralState(), 5) == {}
    assert encode_state(EphemeralState(scroll=0.0), 5) == {"scroll": 0.0}


@pytest.mark.parametrize("block_line_count", [0, 4])
def test_round_trip_below_block_restores_exact_cursor(block_line_count: int) -> None:
    original = EphemeralState(
        cursor=CursorRange(
            from_=CursorPosition(line=block_line_count + 2, ch=6),
            to=CursorPosition(line=block_line_count + 5, ch=1),
        ),
        scroll=310.1234,
    )

    decoded = decode_state(encode_state(original, block_line_count), block_line_count)

    assert decoded == original


def test_round_trip_at_block_boundary_resets_column() -> None:
    original = EphemeralState(cursor=CursorRange.collapsed(CursorPosition(line=4, ch=8)))

    decoded = decode_state(encode_state(original, 4), 4)

    assert decoded is not None
    assert decoded.cursor == CursorRange.collapsed(CursorPosition(line=4, ch=0))


def test_merge_patch_keeps_other_fields() -> None:
    existing = {"title": "Notes", "scroll": 1.0}

    merged = merge_patch(existing, {"scroll": 2.0, "cursor": _stored_cursor(0, 0, 0, 0)})

    assert merged is existing
    assert existing == {"title": "Notes", "scroll": 2.0, "cursor": _stored_cursor(0, 0, 0, 0)}

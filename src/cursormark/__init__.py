"""Persist cursor selection and scroll offset in a document's YAML front matter."""

from .codec import decode_state, encode_state
from .plugin import CursorMarkPlugin
from .state import CursorPosition, CursorRange, EphemeralState, states_equal

__all__ = [
    "CursorMarkPlugin",
    "CursorPosition",
    "CursorRange",
    "EphemeralState",
    "decode_state",
    "encode_state",
    "states_equal",
]

__version__ = "0.3.0"

"""User-invoked save/restore of view state, bypassing open-event gating."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, MutableMapping

from .codec import decode_state, encode_state, merge_patch
from .errors import MetadataReadError, MetadataWriteError
from .events import EphemeralStateApplied, EventBus
from .host import EditorHost
from .orchestrator import apply_state
from .state import CursorRange, EphemeralState, round_scroll, states_equal

__all__ = [
    "SAVE_COMMAND_ID",
    "RESTORE_COMMAND_ID",
    "CommandOutcome",
    "PluginCommand",
    "build_commands",
    "index_commands",
    "capture_state",
    "restore_saved_position",
    "save_current_position",
    "write_state",
]

LOGGER = logging.getLogger(__name__)

SAVE_COMMAND_ID = "save-current-position"
RESTORE_COMMAND_ID = "restore-saved-position"

NOTICE_SAVED = "Position & selection saved to frontmatter"
NOTICE_RESTORED = "Position & selection restored from frontmatter"
NOTICE_NOTHING_SAVED = "No saved position & selection in frontmatter"
NOTICE_WRITE_FAILED = "Failed to update cursor position information in frontmatter"
NOTICE_READ_FAILED = "Failed to read cursor position information from frontmatter"


class CommandOutcome(str, enum.Enum):
    SAVED = "saved"
    UNCHANGED = "unchanged"
    RESTORED = "restored"
    NOTHING_SAVED = "nothing_saved"
    NO_ACTIVE_FILE = "no_active_file"
    WRITE_FAILED = "write_failed"
    READ_FAILED = "read_failed"


@dataclass(slots=True)
class PluginCommand:
    """Palette entry registered with the host."""

    command_id: str
    name: str
    callback: Callable[[], Awaitable[CommandOutcome]]


def capture_state(host: EditorHost) -> EphemeralState:
    """Read the live selection (anchor to head) and rounded scroll offset."""

    cursor: CursorRange | None = None
    selection = host.get_live_editor_selection()
    if selection is not None:
        anchor, head = selection
        cursor = CursorRange(from_=anchor, to=head)
    return EphemeralState(cursor=cursor, scroll=round_scroll(host.get_live_view_scroll()))


def write_state(host: EditorHost, path: str, state: EphemeralState) -> None:
    """Encode ``state`` against the current block size and merge it into ``path``.

    Raises :class:`~cursormark.errors.MetadataWriteError` on failure.
    """

    block_line_count = host.get_document_metadata(path).block_line_count
    patch = encode_state(state, block_line_count)

    def _apply(fields: MutableMapping[str, Any]) -> None:
        merge_patch(fields, patch)

    host.update_document_metadata(path, _apply)


async def save_current_position(host: EditorHost, *, skip_unchanged: bool = False) -> CommandOutcome:
    path = host.get_active_document_path()
    if not path:
        LOGGER.debug("Save requested with no active document")
        return CommandOutcome.NO_ACTIVE_FILE

    state = capture_state(host)
    try:
        if skip_unchanged:
            metadata = host.get_document_metadata(path)
            stored = decode_state(metadata.fields, metadata.block_line_count)
            if stored is not None and states_equal(stored, state):
                LOGGER.debug("View state for %s unchanged; skipping write", path)
                return CommandOutcome.UNCHANGED
        write_state(host, path, state)
    except (MetadataReadError, MetadataWriteError):
        LOGGER.exception("Saving cursor position to %s failed", path)
        host.notify_user(NOTICE_WRITE_FAILED)
        return CommandOutcome.WRITE_FAILED

    host.notify_user(NOTICE_SAVED)
    return CommandOutcome.SAVED


async def restore_saved_position(host: EditorHost, *, bus: EventBus | None = None) -> CommandOutcome:
    path = host.get_active_document_path()
    if not path:
        LOGGER.debug("Restore requested with no active document")
        return CommandOutcome.NO_ACTIVE_FILE

    try:
        metadata = host.get_document_metadata(path)
    except MetadataReadError:
        LOGGER.exception("Reading saved cursor position from %s failed", path)
        host.notify_user(NOTICE_READ_FAILED)
        return CommandOutcome.READ_FAILED

    state = decode_state(metadata.fields, metadata.block_line_count)
    if state is None:
        host.notify_user(NOTICE_NOTHING_SAVED)
        return CommandOutcome.NOTHING_SAVED

    apply_state(host, state)
    if bus is not None:
        bus.publish(EphemeralStateApplied(path=path, source="manual"))
    host.notify_user(NOTICE_RESTORED)
    return CommandOutcome.RESTORED


def build_commands(host: EditorHost, *, bus: EventBus | None = None) -> List[PluginCommand]:
    """Return the palette commands in registration order."""

    async def _save() -> CommandOutcome:
        return await save_current_position(host)

    async def _restore() -> CommandOutcome:
        return await restore_saved_position(host, bus=bus)

    return [
        PluginCommand(command_id=SAVE_COMMAND_ID, name="Save position & selection", callback=_save),
        PluginCommand(command_id=RESTORE_COMMAND_ID, name="Restore position & selection", callback=_restore),
    ]


def index_commands(commands: Iterable[PluginCommand]) -> Dict[str, PluginCommand]:
    return {command.command_id: command for command in commands}

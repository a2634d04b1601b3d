"""Gate deciding whether a document-opened event needs a state restore.

Hosts report an "opened" event far more often than a document actually needs
its view restored: on every pane re-render, split and tab switch. The gate
remembers which pane+file pairings were already accounted for and admits at
most one restore per pairing until the set of open panes changes.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterable, Optional, Set

from .host import DOCUMENT_VIEW_TYPE, PaneHandle

__all__ = ["GateAction", "OpenEventDeduplicator"]

LOGGER = logging.getLogger(__name__)


class GateAction(str, enum.Enum):
    """Outcome of :meth:`OpenEventDeduplicator.evaluate`."""

    RESTORE = "restore"
    SKIP_IN_PROGRESS = "skip_in_progress"
    SKIP_ALREADY_TRACKED = "skip_already_tracked"
    SKIP_SAME_FILE = "skip_same_file"
    SKIP_NO_FILE = "skip_no_file"

    @property
    def should_restore(self) -> bool:
        return self is GateAction.RESTORE


class OpenEventDeduplicator:
    """Pure open-event gate; owns no I/O and never touches the host directly."""

    def __init__(self) -> None:
        self.last_loaded_path: str | None = None
        self.loading_path: str | None = None
        self._in_flight = 0
        self._tokens: Set[str] = set()

    @property
    def restore_in_progress(self) -> bool:
        return self._in_flight > 0

    @property
    def tracked_tokens(self) -> frozenset[str]:
        return frozenset(self._tokens)

    def evaluate(
        self,
        active_path: str | None,
        recent_pane: Optional[PaneHandle],
        panes: Iterable[PaneHandle],
    ) -> GateAction:
        """Classify an open event given a snapshot of the host's panes.

        A ``RESTORE`` result records ``active_path`` as the last loaded file;
        the caller must then bracket the restore with :meth:`begin` and
        :meth:`finish`.
        """

        if active_path and self.restore_in_progress and self.loading_path == active_path:
            LOGGER.debug("Restore already running for %s; absorbing open event", active_path)
            return GateAction.SKIP_IN_PROGRESS

        if recent_pane is not None and recent_pane.token in self._tokens:
            LOGGER.debug("Pane %s already handled; skipping", recent_pane.token)
            return GateAction.SKIP_ALREADY_TRACKED

        self._tokens = {pane.token for pane in panes if pane.view_type == DOCUMENT_VIEW_TYPE}

        if active_path == self.last_loaded_path:
            return GateAction.SKIP_NO_FILE if active_path is None else GateAction.SKIP_SAME_FILE
        self.last_loaded_path = active_path
        if active_path is None:
            return GateAction.SKIP_NO_FILE
        return GateAction.RESTORE

    def begin(self, path: str) -> None:
        """Mark a restore for ``path`` as in flight."""

        self._in_flight += 1
        self.loading_path = path

    def finish(self) -> None:
        if self._in_flight > 0:
            self._in_flight -= 1

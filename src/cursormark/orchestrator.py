"""Timing state machine that restores view state after a document opens.

The host runs its own asynchronous load and, when a document is reached via
a heading link, its own scroll-and-highlight. A restore therefore waits for
the configured delay, yields entirely if a highlight is flashing, and only
then applies the stored cursor and scroll.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .codec import decode_state
from .dedup import GateAction, OpenEventDeduplicator
from .events import EphemeralStateApplied, EventBus
from .host import EditorHost
from .state import EphemeralState

__all__ = [
    "FLASH_SETTLE_DELAY_MS",
    "RestoreOrchestrator",
    "RestoreOutcome",
    "RestorePhase",
    "RestoreResult",
    "apply_state",
]

LOGGER = logging.getLogger(__name__)

FLASH_SETTLE_DELAY_MS = 10

SleepFn = Callable[[float], Awaitable[None]]
DelayProvider = Callable[[], int]


class RestorePhase(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    WAITING = "waiting"
    FLASH_CHECK = "flash_check"
    SETTLING = "settling"
    APPLYING = "applying"


class RestoreOutcome(str, enum.Enum):
    APPLIED = "applied"
    NO_STATE = "no_state"
    ABORTED_FLASHING = "aborted_flashing"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class RestoreResult:
    """What a single open event led to."""

    outcome: RestoreOutcome
    gate: GateAction
    path: str | None = None
    state: EphemeralState | None = None


def apply_state(host: EditorHost, state: EphemeralState) -> None:
    """Push ``state`` into the live editor; a zero scroll is left untouched."""

    if state.cursor is not None:
        host.set_live_editor_selection(state.cursor.from_, state.cursor.to)
    if state.scroll:
        host.set_live_view_scroll(state.scroll)


class RestoreOrchestrator:
    """Drives one restore attempt per admitted open event.

    Attempts run one at a time under a lock and are never cancelled: an
    attempt superseded by a newer open event still runs to apply-or-abort.
    """

    def __init__(
        self,
        host: EditorHost,
        *,
        delay_provider: DelayProvider,
        deduplicator: OpenEventDeduplicator | None = None,
        bus: EventBus | None = None,
        sleep: SleepFn | None = None,
        settle_delay_ms: int = FLASH_SETTLE_DELAY_MS,
    ) -> None:
        self._host = host
        self._delay_provider = delay_provider
        self._dedup = deduplicator or OpenEventDeduplicator()
        self._bus = bus
        self._sleep = sleep or asyncio.sleep
        self._settle_delay_ms = settle_delay_ms
        self._lock = asyncio.Lock()
        self.phase = RestorePhase.IDLE

    @property
    def deduplicator(self) -> OpenEventDeduplicator:
        return self._dedup

    @property
    def restore_in_progress(self) -> bool:
        return self._dedup.restore_in_progress

    def admit(self) -> tuple[GateAction, str | None]:
        """Run the open-event gate against the host's current panes.

        On ``RESTORE`` the path is marked in flight before returning, so a
        duplicate event delivered while the restore is pending is absorbed.
        """

        path = self._host.get_active_document_path()
        action = self._dedup.evaluate(
            path,
            self._host.get_most_recent_pane(),
            self._host.enumerate_document_panes(),
        )
        if action.should_restore and path is not None:
            self._dedup.begin(path)
        else:
            LOGGER.debug("Open event for %s not restored (%s)", path, action.value)
        return action, path

    async def handle_open(self) -> RestoreResult:
        """Gate an open event and, when admitted, run the restore to completion."""

        action, path = self.admit()
        if not action.should_restore or path is None:
            return RestoreResult(outcome=RestoreOutcome.SKIPPED, gate=action, path=path)
        return await self.run_admitted(path)

    async def run_admitted(self, path: str) -> RestoreResult:
        """Restore ``path``; the caller must have admitted it through :meth:`admit`."""

        try:
            async with self._lock:
                return await self._restore(path)
        except Exception:
            LOGGER.exception("Restoring view state for %s failed", path)
            return RestoreResult(outcome=RestoreOutcome.FAILED, gate=GateAction.RESTORE, path=path)
        finally:
            self.phase = RestorePhase.IDLE
            self._dedup.finish()

    async def _restore(self, path: str) -> RestoreResult:
        self.phase = RestorePhase.LOADING
        metadata = self._host.get_document_metadata(path)
        state = decode_state(metadata.fields, metadata.block_line_count)
        if state is None:
            LOGGER.debug("No stored view state in %s", path)
            return RestoreResult(outcome=RestoreOutcome.NO_STATE, gate=GateAction.RESTORE, path=path)

        self.phase = RestorePhase.WAITING
        await self._sleep_ms(self._delay_provider())

        self.phase = RestorePhase.FLASH_CHECK
        if self._host.is_host_performing_highlight_navigation():
            LOGGER.debug("Link highlight active while opening %s; leaving view alone", path)
            return RestoreResult(
                outcome=RestoreOutcome.ABORTED_FLASHING, gate=GateAction.RESTORE, path=path, state=state
            )

        self.phase = RestorePhase.SETTLING
        await self._sleep_ms(self._settle_delay_ms)

        self.phase = RestorePhase.APPLYING
        apply_state(self._host, state)
        LOGGER.debug("Restored view state for %s: %s", path, state)
        if self._bus is not None:
            self._bus.publish(EphemeralStateApplied(path=path, source="auto"))
        return RestoreResult(outcome=RestoreOutcome.APPLIED, gate=GateAction.RESTORE, path=path, state=state)

    async def _sleep_ms(self, milliseconds: Optional[int]) -> None:
        await self._sleep(max(int(milliseconds or 0), 0) / 1000)

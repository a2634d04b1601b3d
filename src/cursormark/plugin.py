"""Top-level registration point wiring the engine into a host editor."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Set

from .commands import CommandOutcome, PluginCommand, build_commands, index_commands
from .events import EventBus, SettingsChanged
from .host import EditorHost
from .orchestrator import RestoreOrchestrator, RestoreResult, SleepFn
from .settings import Settings, SettingsStore, SettingsTab

__all__ = ["CursorMarkPlugin"]

LOGGER = logging.getLogger(__name__)


class CursorMarkPlugin:
    """Owns the settings, the restore orchestrator, and the palette commands.

    Open events arrive synchronously from the host; each admitted restore is
    scheduled as a task on the running event loop.
    """

    def __init__(
        self,
        host: EditorHost,
        *,
        settings_store: SettingsStore,
        bus: EventBus | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._host = host
        self._store = settings_store
        self._bus = bus
        self._sleep = sleep
        self.settings = Settings()
        self.settings_tab: SettingsTab | None = None
        self.orchestrator: RestoreOrchestrator | None = None
        self.commands: Dict[str, PluginCommand] = {}
        self._pending: Set[asyncio.Task[RestoreResult]] = set()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def loaded(self) -> bool:
        return self.orchestrator is not None

    async def load(self) -> RestoreResult:
        """Register with the host and restore the document open at startup."""

        self.settings = self._store.load()
        if self.settings.debug_logging:
            logging.getLogger("cursormark").setLevel(logging.DEBUG)
        self.settings_tab = SettingsTab(self.settings, self._store, on_change=self._handle_setting_changed)
        self.orchestrator = RestoreOrchestrator(
            self._host,
            delay_provider=lambda: self.settings.delay_after_file_opening,
            bus=self._bus,
            sleep=self._sleep,
        )
        self.commands = index_commands(build_commands(self._host, bus=self._bus))
        self._unsubscribe = self._host.on_document_opened(self._handle_document_opened)
        LOGGER.info(
            "Loaded (delay=%sms, commands=%s)", self.settings.delay_after_file_opening, sorted(self.commands)
        )
        return await self.orchestrator.handle_open()

    async def unload(self) -> None:
        """Stop listening for open events and let in-flight restores finish."""

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_idle()
        self.orchestrator = None

    async def wait_idle(self) -> list[RestoreResult]:
        """Wait for all scheduled restores; returns their results."""

        pending = list(self._pending)
        if not pending:
            return []
        results = await asyncio.gather(*pending)
        self._pending.difference_update(pending)
        return list(results)

    async def run_command(self, command_id: str) -> CommandOutcome:
        command = self.commands.get(command_id)
        if command is None:
            raise KeyError(f"Unknown command: {command_id}")
        return await command.callback()

    def _handle_document_opened(self, path: str | None) -> None:
        orchestrator = self.orchestrator
        if orchestrator is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.warning("Open event for %s delivered outside an event loop; ignoring", path)
            return

        action, admitted_path = orchestrator.admit()
        if not action.should_restore or admitted_path is None:
            return
        task = loop.create_task(orchestrator.run_admitted(admitted_path))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _handle_setting_changed(self, key: str, value: Any) -> None:
        LOGGER.debug("Setting %s changed to %r", key, value)
        if self._bus is not None:
            self._bus.publish(SettingsChanged(name=key, value=value))

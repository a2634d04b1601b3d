"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Sequence

import pytest

from cursormark.errors import MetadataWriteError
from cursormark.events import EventBus
from cursormark.frontmatter import FrontmatterStore
from cursormark.host import DocumentMetadata, PaneHandle
from cursormark.settings import SettingsStore
from cursormark.state import CursorPosition
from cursormark.workspace import Workspace


class RecordingSleep:
    """Async ``sleep`` replacement that records requested durations in seconds."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None) -> None:
        self.calls: List[float] = []
        self.on_sleep = on_sleep

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep(seconds)


class StubHost:
    """In-memory :class:`~cursormark.host.EditorHost` with scripted answers."""

    def __init__(
        self,
        *,
        active_path: str | None = "Notes.md",
        fields: Dict[str, Any] | None = None,
        block_line_count: int = 0,
        panes: Sequence[PaneHandle] | None = None,
    ) -> None:
        self.active_path = active_path
        self.fields: Dict[str, Any] = dict(fields or {})
        self.block_line_count = block_line_count
        self.panes: List[PaneHandle] = list(panes or [PaneHandle(id="pane-1", displayed_document_path=active_path)])
        self.selection: tuple[CursorPosition, CursorPosition] | None = (CursorPosition(), CursorPosition())
        self.scroll: float | None = 0.0
        self.flashing = False
        self.fail_writes = False
        self.notices: List[str] = []
        self.metadata_reads = 0
        self.selection_writes = 0
        self.scroll_writes = 0
        self.listeners: List[Callable[[Optional[str]], None]] = []

    def on_document_opened(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def fire_opened(self) -> None:
        for listener in list(self.listeners):
            listener(self.active_path)

    def get_active_document_path(self) -> str | None:
        return self.active_path

    def get_most_recent_pane(self) -> PaneHandle | None:
        return self.panes[-1] if self.panes else None

    def enumerate_document_panes(self) -> Sequence[PaneHandle]:
        return list(self.panes)

    def get_document_metadata(self, path: str) -> DocumentMetadata:
        self.metadata_reads += 1
        return DocumentMetadata(fields=dict(self.fields), block_line_count=self.block_line_count)

    def update_document_metadata(self, path: str, patch_fn: Callable[[MutableMapping[str, Any]], None]) -> None:
        if self.fail_writes:
            raise MetadataWriteError(path, "disk full")
        patch_fn(self.fields)

    def get_live_editor_selection(self) -> tuple[CursorPosition, CursorPosition] | None:
        return self.selection

    def set_live_editor_selection(self, from_: CursorPosition, to: CursorPosition) -> None:
        self.selection_writes += 1
        self.selection = (from_, to)

    def get_live_view_scroll(self) -> float | None:
        return self.scroll

    def set_live_view_scroll(self, value: float) -> None:
        self.scroll_writes += 1
        self.scroll = value

    def is_host_performing_highlight_navigation(self) -> bool:
        return self.flashing

    def notify_user(self, message: str) -> None:
        self.notices.append(message)


@pytest.fixture
def stub_host_factory() -> Callable[..., StubHost]:
    return StubHost


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def workspace(vault: Path, bus: EventBus) -> Workspace:
    return Workspace(FrontmatterStore(vault), bus=bus)


@pytest.fixture
def settings_store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CURSORMARK_LOG_DIR", str(tmp_path / "logs"))
    for name in (
        "CURSORMARK_DELAY_AFTER_FILE_OPENING",
        "CURSORMARK_DEBUG_LOGGING",
        "CURSORMARK_DEBUG",
        "CURSORMARK_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)

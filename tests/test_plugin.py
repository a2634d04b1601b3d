"""End-to-end tests for the plugin wiring against the headless workspace."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest

from cursormark.commands import NOTICE_SAVED, RESTORE_COMMAND_ID, SAVE_COMMAND_ID, CommandOutcome
from cursormark.dedup import GateAction
from cursormark.events import EventBus, SettingsChanged
from cursormark.orchestrator import RestoreOutcome
from cursormark.plugin import CursorMarkPlugin
from cursormark.settings import SettingsStore
from cursormark.state import CursorPosition
from cursormark.workspace import Workspace

_STORED_A = "---\ncursor:\n  from: {line: 1, ch: 2}\n  to: {line: 1, ch: 2}\nscroll: 64.0\n---\nzero\none\ntwo\n"


@pytest.fixture
def populated_vault(vault: Path) -> Path:
    (vault / "A.md").write_text(_STORED_A, encoding="utf-8")
    (vault / "B.md").write_text("plain body\nsecond line\n", encoding="utf-8")
    return vault


@pytest.fixture
def plugin(workspace: Workspace, settings_store: SettingsStore, recording_sleep, bus: EventBus) -> CursorMarkPlugin:
    return CursorMarkPlugin(workspace, settings_store=settings_store, bus=bus, sleep=recording_sleep)


def _caret(workspace: Workspace) -> CursorPosition:
    selection = workspace.get_live_editor_selection()
    assert selection is not None
    return selection[1]


@pytest.mark.asyncio
async def test_load_restores_document_open_at_startup(
    stub_host_factory: Callable, settings_store: SettingsStore, recording_sleep
) -> None:
    host = stub_host_factory(
        fields={"cursor": {"from": {"line": 0, "ch": 4}, "to": {"line": 0, "ch": 4}}},
        block_line_count=3,
    )
    plugin = CursorMarkPlugin(host, settings_store=settings_store, sleep=recording_sleep)

    result = await plugin.load()

    assert plugin.loaded
    assert result.outcome is RestoreOutcome.APPLIED
    assert host.selection == (CursorPosition(line=3, ch=4), CursorPosition(line=3, ch=4))
    assert recording_sleep.calls == [0.1, 0.01]
    assert len(host.listeners) == 1


@pytest.mark.asyncio
async def test_load_uses_persisted_delay(
    stub_host_factory: Callable, settings_store: SettingsStore, recording_sleep
) -> None:
    settings_store.save({"delay_after_file_opening": 250})
    host = stub_host_factory(fields={"scroll": 10.0})

    await CursorMarkPlugin(host, settings_store=settings_store, sleep=recording_sleep).load()

    assert recording_sleep.calls[0] == 0.25


@pytest.mark.asyncio
async def test_opening_a_file_schedules_restore(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    startup = await plugin.load()
    assert startup.gate is GateAction.SKIP_NO_FILE

    workspace.open_file("A.md", pane_id="main")
    results = await plugin.wait_idle()

    assert [result.outcome for result in results] == [RestoreOutcome.APPLIED]
    assert _caret(workspace) == CursorPosition(line=7, ch=2)
    assert workspace.get_live_view_scroll() == 64.0


@pytest.mark.asyncio
async def test_refocusing_pane_does_not_restore_again(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()
    workspace.open_file("A.md", pane_id="main")
    await plugin.wait_idle()
    moved = CursorPosition(line=8, ch=0)
    workspace.set_live_editor_selection(moved, moved)

    workspace.focus_pane("main")

    assert await plugin.wait_idle() == []
    assert _caret(workspace) == moved


@pytest.mark.asyncio
async def test_same_file_in_split_is_left_alone(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()
    workspace.open_file("A.md", pane_id="left")
    await plugin.wait_idle()

    workspace.open_file("A.md", pane_id="right", new_pane=True)

    assert await plugin.wait_idle() == []
    assert _caret(workspace) == CursorPosition()


@pytest.mark.asyncio
async def test_link_highlight_suppresses_restore(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()

    workspace.begin_highlight_navigation()
    workspace.open_file("A.md", pane_id="main")
    results = await plugin.wait_idle()
    workspace.end_highlight_navigation()

    assert [result.outcome for result in results] == [RestoreOutcome.ABORTED_FLASHING]
    assert _caret(workspace) == CursorPosition()


@pytest.mark.asyncio
async def test_saved_position_survives_switching_files(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()
    workspace.open_file("B.md", pane_id="main")
    assert [result.outcome for result in await plugin.wait_idle()] == [RestoreOutcome.NO_STATE]
    workspace.set_live_editor_selection(CursorPosition(line=1, ch=6), CursorPosition(line=1, ch=6))

    assert await plugin.run_command(SAVE_COMMAND_ID) is CommandOutcome.SAVED
    saved = _caret(workspace)
    assert workspace.notices[-1] == NOTICE_SAVED

    workspace.open_file("A.md")
    await plugin.wait_idle()
    workspace.open_file("B.md")
    await plugin.wait_idle()

    assert _caret(workspace) == saved
    assert (populated_vault / "B.md").read_text(encoding="utf-8").endswith("---\nplain body\nsecond line\n")


@pytest.mark.asyncio
async def test_restore_command_bypasses_gate(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()
    workspace.open_file("A.md", pane_id="left")
    await plugin.wait_idle()
    workspace.open_file("A.md", pane_id="right", new_pane=True)
    await plugin.wait_idle()

    assert await plugin.run_command(RESTORE_COMMAND_ID) is CommandOutcome.RESTORED
    assert _caret(workspace) == CursorPosition(line=7, ch=2)


@pytest.mark.asyncio
async def test_unknown_command_raises(plugin: CursorMarkPlugin) -> None:
    await plugin.load()

    with pytest.raises(KeyError):
        await plugin.run_command("does-not-exist")


@pytest.mark.asyncio
async def test_unload_stops_listening(
    populated_vault: Path, workspace: Workspace, plugin: CursorMarkPlugin
) -> None:
    await plugin.load()
    await plugin.unload()

    workspace.open_file("A.md", pane_id="main")

    assert not plugin.loaded
    assert await plugin.wait_idle() == []
    assert _caret(workspace) == CursorPosition()


@pytest.mark.asyncio
async def test_settings_tab_changes_are_published(plugin: CursorMarkPlugin, bus: EventBus) -> None:
    changes: list[SettingsChanged] = []
    bus.subscribe(SettingsChanged, changes.append)
    await plugin.load()
    assert plugin.settings_tab is not None

    plugin.settings_tab.change("delay_after_file_opening", 0)

    assert plugin.settings.delay_after_file_opening == 0
    assert changes == [SettingsChanged(name="delay_after_file_opening", value=0)]


@pytest.mark.asyncio
async def test_debug_setting_raises_package_log_level(
    stub_host_factory: Callable, settings_store: SettingsStore, recording_sleep
) -> None:
    settings_store.save({"debug_logging": True})
    package_logger = logging.getLogger("cursormark")
    previous = package_logger.level
    try:
        await CursorMarkPlugin(stub_host_factory(), settings_store=settings_store, sleep=recording_sleep).load()
        assert package_logger.level == logging.DEBUG
    finally:
        package_logger.setLevel(previous)

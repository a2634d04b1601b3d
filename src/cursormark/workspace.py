"""Headless editor host managing panes over a vault of Markdown files."""

from __future__ import annotations

import contextlib
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .events import DocumentOpened, EventBus, NoticePosted
from .frontmatter import FrontmatterStore
from .host import DOCUMENT_VIEW_TYPE, DocumentMetadata, DocumentOpenedCallback, MetadataPatchFn, PaneHandle
from .state import CursorPosition

__all__ = ["EditorView", "Pane", "Workspace"]

LOGGER = logging.getLogger(__name__)


def _generate_pane_id() -> str:
    return uuid.uuid4().hex[:16]


@dataclass(slots=True)
class EditorView:
    """Live selection (anchor, head) and vertical scroll offset of one pane."""

    selection: tuple[CursorPosition, CursorPosition] | None = None
    scroll: float = 0.0

    def reset(self) -> None:
        self.selection = (CursorPosition(), CursorPosition())
        self.scroll = 0.0


@dataclass(slots=True)
class Pane:
    """A viewport displaying one document (or a non-document view)."""

    id: str
    path: str | None = None
    view_type: str = DOCUMENT_VIEW_TYPE
    editor: EditorView = field(default_factory=EditorView)

    @property
    def is_document(self) -> bool:
        return self.view_type == DOCUMENT_VIEW_TYPE

    def handle(self) -> PaneHandle:
        return PaneHandle(id=self.id, displayed_document_path=self.path, view_type=self.view_type)


class Workspace:
    """In-process :class:`~cursormark.host.EditorHost` implementation.

    Opening a file or focusing a pane fires the document-opened callbacks,
    mirroring a desktop editor that reports every activation, not only real
    file changes.
    """

    def __init__(self, store: FrontmatterStore, *, bus: EventBus | None = None) -> None:
        self._store = store
        self._bus = bus
        self._panes: Dict[str, Pane] = {}
        self._order: List[str] = []
        self._recent: List[str] = []
        self._active_pane_id: str | None = None
        self._listeners: List[DocumentOpenedCallback] = []
        self._highlighting = False
        self.notices: List[str] = []

    # ------------------------------------------------------------------
    # Pane lifecycle
    # ------------------------------------------------------------------
    def open_file(
        self,
        path: Path | str | None,
        *,
        pane_id: str | None = None,
        new_pane: bool = False,
        view_type: str = DOCUMENT_VIEW_TYPE,
    ) -> Pane:
        """Show ``path`` in a pane (the active one unless told otherwise) and activate it."""

        target = self._resolve_target_pane(pane_id, new_pane=new_pane, view_type=view_type)
        normalized = str(path) if path is not None else None
        if target.path != normalized:
            target.path = normalized
            target.editor.reset()
        target.view_type = view_type
        self._activate(target.id)
        return target

    def focus_pane(self, pane_id: str) -> Pane:
        if pane_id not in self._panes:
            raise KeyError(f"Unknown pane_id: {pane_id}")
        self._activate(pane_id)
        return self._panes[pane_id]

    def close_pane(self, pane_id: str) -> Pane:
        if pane_id not in self._panes:
            raise KeyError(f"Unknown pane_id: {pane_id}")
        pane = self._panes.pop(pane_id)
        self._order.remove(pane_id)
        if pane_id in self._recent:
            self._recent.remove(pane_id)
        if self._active_pane_id == pane_id:
            fallback = self._recent[-1] if self._recent else (self._order[-1] if self._order else None)
            self._active_pane_id = None
            if fallback is not None:
                self._activate(fallback)
        return pane

    def iter_panes(self) -> Iterator[Pane]:
        for pane_id in self._order:
            yield self._panes[pane_id]

    def get_pane(self, pane_id: str) -> Pane:
        return self._panes[pane_id]

    @property
    def active_pane(self) -> Pane | None:
        if self._active_pane_id is None:
            return None
        return self._panes.get(self._active_pane_id)

    # ------------------------------------------------------------------
    # Link navigation
    # ------------------------------------------------------------------
    def begin_highlight_navigation(self) -> None:
        """Mark that a link-triggered scroll/highlight is flashing in the UI."""

        self._highlighting = True

    def end_highlight_navigation(self) -> None:
        self._highlighting = False

    @contextlib.contextmanager
    def highlight_navigation(self) -> Iterator[None]:
        self.begin_highlight_navigation()
        try:
            yield
        finally:
            self.end_highlight_navigation()

    # ------------------------------------------------------------------
    # EditorHost protocol
    # ------------------------------------------------------------------
    def on_document_opened(self, callback: DocumentOpenedCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unregister() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _unregister

    def get_active_document_path(self) -> str | None:
        pane = self.active_pane
        return pane.path if pane is not None else None

    def get_most_recent_pane(self) -> PaneHandle | None:
        for pane_id in reversed(self._recent):
            pane = self._panes[pane_id]
            if pane.is_document:
                return pane.handle()
        return None

    def enumerate_document_panes(self) -> Sequence[PaneHandle]:
        return [pane.handle() for pane in self.iter_panes() if pane.is_document]

    def get_document_metadata(self, path: str) -> DocumentMetadata:
        return self._store.read(path)

    def update_document_metadata(self, path: str, patch_fn: MetadataPatchFn) -> None:
        before = self._store.read(path).block_line_count
        self._store.update(path, patch_fn)
        delta = self._store.read(path).block_line_count - before
        if delta:
            self._shift_selections(path, start_line=before, delta=delta)

    def get_live_editor_selection(self) -> tuple[CursorPosition, CursorPosition] | None:
        editor = self._active_editor()
        return editor.selection if editor is not None else None

    def set_live_editor_selection(self, from_: CursorPosition, to: CursorPosition) -> None:
        editor = self._active_editor()
        if editor is not None:
            editor.selection = (from_, to)

    def get_live_view_scroll(self) -> float | None:
        editor = self._active_editor()
        return editor.scroll if editor is not None else None

    def set_live_view_scroll(self, value: float) -> None:
        editor = self._active_editor()
        if editor is not None:
            editor.scroll = value

    def is_host_performing_highlight_navigation(self) -> bool:
        return self._highlighting

    def notify_user(self, message: str) -> None:
        LOGGER.info("Notice: %s", message)
        self.notices.append(message)
        if self._bus is not None:
            self._bus.publish(NoticePosted(message=message))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve_target_pane(self, pane_id: str | None, *, new_pane: bool, view_type: str) -> Pane:
        if pane_id is not None and pane_id in self._panes:
            return self._panes[pane_id]
        if not new_pane and pane_id is None and self.active_pane is not None:
            return self.active_pane
        pane = Pane(id=pane_id or _generate_pane_id(), view_type=view_type)
        self._panes[pane.id] = pane
        self._order.append(pane.id)
        return pane

    def _activate(self, pane_id: str) -> None:
        self._active_pane_id = pane_id
        if pane_id in self._recent:
            self._recent.remove(pane_id)
        self._recent.append(pane_id)
        self._fire_opened(self._panes[pane_id])

    def _fire_opened(self, pane: Pane) -> None:
        path = pane.path if pane.is_document else None
        for listener in list(self._listeners):
            listener(path)
        if self._bus is not None:
            self._bus.publish(DocumentOpened(path=path, pane_id=pane.id))

    def _shift_selections(self, path: str, *, start_line: int, delta: int) -> None:
        # Body text moved when the block was resized; keep carets on the same text.
        def _shift(position: CursorPosition) -> CursorPosition:
            if position.line < start_line:
                return position
            return CursorPosition(line=max(position.line + delta, 0), ch=position.ch)

        for pane in self.iter_panes():
            if pane.path != path or pane.editor.selection is None:
                continue
            anchor, head = pane.editor.selection
            pane.editor.selection = (_shift(anchor), _shift(head))

    def _active_editor(self) -> Optional[EditorView]:
        pane = self.active_pane
        if pane is None or not pane.is_document or pane.path is None:
            return None
        return pane.editor

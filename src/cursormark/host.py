"""Interfaces consumed from the host editor application."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, MutableMapping, Optional, Protocol, Sequence, runtime_checkable

from .state import CursorPosition

__all__ = [
    "DOCUMENT_VIEW_TYPE",
    "DocumentMetadata",
    "DocumentOpenedCallback",
    "EditorHost",
    "MetadataPatchFn",
    "PaneHandle",
]

DOCUMENT_VIEW_TYPE = "markdown"

DocumentOpenedCallback = Callable[[Optional[str]], None]
MetadataPatchFn = Callable[[MutableMapping[str, Any]], None]


@dataclass(slots=True, frozen=True)
class PaneHandle:
    """A host viewport showing (at most) one document."""

    id: str
    displayed_document_path: str | None
    view_type: str = DOCUMENT_VIEW_TYPE

    @property
    def token(self) -> str:
        """Identity used to remember that this pane+file pairing was handled."""

        return f"{self.id}:{self.displayed_document_path}"


@dataclass(slots=True)
class DocumentMetadata:
    """Parsed front-matter fields plus the number of lines the block occupies."""

    fields: Dict[str, Any] = field(default_factory=dict)
    block_line_count: int = 0

    @classmethod
    def empty(cls) -> "DocumentMetadata":
        return cls()


@runtime_checkable
class EditorHost(Protocol):
    """Everything the synchronization engine needs from the host editor."""

    def on_document_opened(self, callback: DocumentOpenedCallback) -> Callable[[], None]:
        """Register ``callback``; the returned callable unregisters it."""
        ...

    def get_active_document_path(self) -> str | None:
        ...

    def get_most_recent_pane(self) -> PaneHandle | None:
        ...

    def enumerate_document_panes(self) -> Sequence[PaneHandle]:
        ...

    def get_document_metadata(self, path: str) -> DocumentMetadata:
        ...

    def update_document_metadata(self, path: str, patch_fn: MetadataPatchFn) -> None:
        """Atomically apply ``patch_fn`` to the stored fields; raises ``MetadataWriteError``."""
        ...

    def get_live_editor_selection(self) -> tuple[CursorPosition, CursorPosition] | None:
        ...

    def set_live_editor_selection(self, from_: CursorPosition, to: CursorPosition) -> None:
        ...

    def get_live_view_scroll(self) -> float | None:
        ...

    def set_live_view_scroll(self, value: float) -> None:
        ...

    def is_host_performing_highlight_navigation(self) -> bool:
        ...

    def notify_user(self, message: str) -> None:
        ...

"""Notifications the workspace and the restore machinery emit for observers.

Delivery is synchronous and keyed on the exact event class; nothing in the
restore path waits on a subscriber.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

__all__ = [
    "DocumentOpened",
    "EphemeralStateApplied",
    "Event",
    "EventBus",
    "NoticePosted",
    "SettingsChanged",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Event:
    """Base class for all events published on the bus."""


@dataclass(slots=True)
class DocumentOpened(Event):
    """The host's active document changed.

    Attributes:
        path: Vault-relative path of the newly active document, if any.
        pane_id: Identifier of the pane that reported the open.
    """

    path: str | None
    pane_id: str | None = None


@dataclass(slots=True)
class NoticePosted(Event):
    """A user-visible notice was emitted."""

    message: str


@dataclass(slots=True)
class SettingsChanged(Event):
    """A persisted setting changed through the settings surface."""

    name: str
    value: Any


@dataclass(slots=True)
class EphemeralStateApplied(Event):
    """Cursor/scroll state was applied to the live editor.

    Attributes:
        path: Document the state belongs to.
        source: ``"auto"`` for open-event restores, ``"manual"`` for commands.
    """

    path: str
    source: str


class EventBus:
    """Fan-out of events to the callables subscribed for their type."""

    def __init__(self) -> None:
        self._subscribers: Dict[type, List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type[Event], handler: Callable[[Any], None]) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    def publish(self, event: Event) -> None:
        """Deliver ``event``; a subscriber that raises is logged and skipped."""

        for handler in tuple(self._subscribers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                LOGGER.exception("Subscriber %r failed on %s", handler, type(event).__name__)

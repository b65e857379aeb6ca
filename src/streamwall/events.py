"""
events.py – change notifications

The slot pool, focus controller and reconciler publish typed events here;
the reconciler and the display subscribe. Dispatch is synchronous and
happens on the publisher's call stack, so subscribers always observe the
state that produced the event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, FrozenSet, List, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")
Handler = Callable[[Any], None]


# ── Event types ────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ChannelActivated:
    name: str


@dataclass(frozen=True)
class ChannelDeactivated:
    name: str


@dataclass(frozen=True)
class FocusChanged:
    previous: Optional[str]
    current: Optional[str]


@dataclass(frozen=True)
class RosterChanged:
    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OnlineChanged:
    online: FrozenSet[str]


@dataclass(frozen=True)
class LayoutApplied:
    layout: Any


@dataclass(frozen=True)
class EmptyStateChanged:
    empty: bool


@dataclass(frozen=True)
class SidebarToggled:
    collapsed: bool


@dataclass(frozen=True)
class BusyChanged:
    busy: bool


# ── Bus ────────────────────────────────────────────────────────────────────
class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        try:
            self._handlers[event_type].remove(handler)
        except ValueError:
            pass

    def publish(self, event: object) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed for %r", handler, event)

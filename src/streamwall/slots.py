from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from streamwall.events import ChannelActivated, ChannelDeactivated, EventBus, FocusChanged

logger = logging.getLogger(__name__)


@dataclass
class FocusState:
    current: Optional[str] = None
    # Last focus before the current one; may no longer be live.
    previous: Optional[str] = None


class RecencyList:
    """Eviction priority, oldest first. Entries may outlive live membership."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._items: List[str] = []
        for name in names:
            self.touch(name)

    def touch(self, name: str) -> None:
        try:
            self._items.remove(name)
        except ValueError:
            pass
        self._items.append(name)

    def discard(self, name: str) -> None:
        try:
            self._items.remove(name)
        except ValueError:
            pass

    def replace(self, names: Iterable[str]) -> None:
        self._items = []
        for name in names:
            self.touch(name)

    def __iter__(self):
        return iter(list(self._items))

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> List[str]:
        return list(self._items)


class SlotPool:
    """Bounded set of live channels plus the LRU eviction policy.

    When full, activating a channel evicts the least recently used live
    channel that is not focused. If every live channel is protected the
    loop stops and the pool is allowed to exceed capacity by one.
    """

    def __init__(
        self,
        *,
        capacity: int,
        focus: FocusState,
        bus: EventBus,
        recency: Optional[RecencyList] = None,
    ) -> None:
        self.capacity = int(capacity)
        self.focus = focus
        self.bus = bus
        self.recency = recency if recency is not None else RecencyList()
        # dict keeps insertion order so the fallback scan is deterministic
        self._live: Dict[str, None] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._live

    def __len__(self) -> int:
        return len(self._live)

    def live(self) -> List[str]:
        return list(self._live)

    def is_live(self, name: str) -> bool:
        return name in self._live

    def touch(self, name: str) -> None:
        self.recency.touch(name)

    def select_eviction_victim(self, protected: Optional[str]) -> Optional[str]:
        for name in self.recency:
            if name in self._live and name != protected:
                return name
        for name in self._live:
            if name != protected:
                return name
        return None

    def activate(self, name: str) -> None:
        if name in self._live:
            return

        while len(self._live) >= self.capacity:
            victim = self.select_eviction_victim(self.focus.current)
            if victim is None:
                logger.debug("No evictable slot for %s; exceeding capacity %d", name, self.capacity)
                break
            logger.debug("Evicting %s to make room for %s", victim, name)
            self.deactivate(victim)

        self._live[name] = None
        self.touch(name)
        self.bus.publish(ChannelActivated(name))

    def deactivate(self, name: str) -> None:
        if name not in self._live:
            return
        del self._live[name]
        self.bus.publish(ChannelDeactivated(name))
        if self.focus.current == name:
            self.focus.current = None
            self.bus.publish(FocusChanged(previous=name, current=None))

    def restore(self, live: Iterable[str]) -> None:
        """Load live membership from a snapshot, then trim while strictly over capacity."""

        self._live = {name: None for name in live}
        while len(self._live) > self.capacity:
            victim = self.select_eviction_victim(self.focus.current)
            if victim is None:
                break
            del self._live[victim]

    def forget(self, name: str) -> None:
        """Drop every trace of a channel that left the roster."""

        self.deactivate(name)
        self.recency.discard(name)

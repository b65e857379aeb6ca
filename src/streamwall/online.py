from __future__ import annotations

from typing import FrozenSet, Iterable

from streamwall.events import EventBus, OnlineChanged


class OnlineAnnotation:
    """Advisory set of channels believed to be broadcasting. Only affects display ordering."""

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._names: FrozenSet[str] = frozenset()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def snapshot(self) -> FrozenSet[str]:
        return self._names

    def replace(self, names: Iterable[str]) -> None:
        new = frozenset(names)
        if new == self._names:
            return
        self._names = new
        self.bus.publish(OnlineChanged(new))

    def add(self, name: str) -> None:
        if name not in self._names:
            self.replace(self._names | {name})

    def discard(self, name: str) -> None:
        if name in self._names:
            self.replace(self._names - {name})

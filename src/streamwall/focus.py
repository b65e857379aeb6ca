from __future__ import annotations

from typing import List, Optional

from streamwall.channels import Roster
from streamwall.events import EventBus, FocusChanged
from streamwall.slots import SlotPool


class FocusController:
    """Tracks the single enlarged, unmuted slot. A focused channel is always live."""

    def __init__(self, *, pool: SlotPool, roster: Roster, bus: EventBus) -> None:
        self.pool = pool
        self.roster = roster
        self.bus = bus

    @property
    def current(self) -> Optional[str]:
        return self.pool.focus.current

    @property
    def previous(self) -> Optional[str]:
        return self.pool.focus.previous

    def ordered_live(self) -> List[str]:
        return [name for name in self.roster.names() if self.pool.is_live(name)]

    def request_focus(self, name: str) -> None:
        state = self.pool.focus
        if state.current == name:
            return

        prior = state.current
        if prior is not None:
            state.previous = prior

        # Activation may evict, but never the channel being activated.
        if not self.pool.is_live(name):
            self.pool.activate(name)

        state.current = name
        self.pool.touch(name)
        self.bus.publish(FocusChanged(previous=prior, current=name))

    def cycle_focus(self, direction: int) -> None:
        ordered = self.ordered_live()
        if not ordered:
            return
        try:
            idx = ordered.index(self.current) if self.current is not None else -1
        except ValueError:
            idx = -1
        nxt = 0 if idx == -1 else (idx + direction) % len(ordered)
        self.request_focus(ordered[nxt])

    def recall_focus(self) -> None:
        previous = self.pool.focus.previous
        if previous and previous in self.roster:
            self.request_focus(previous)

    def forget(self, name: str) -> None:
        state = self.pool.focus
        if state.current == name:
            state.current = None
            self.bus.publish(FocusChanged(previous=name, current=None))
        if state.previous == name:
            state.previous = None

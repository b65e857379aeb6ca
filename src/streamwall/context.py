from __future__ import annotations

from dataclasses import dataclass

from streamwall.channels import Roster
from streamwall.config import Settings
from streamwall.events import EventBus
from streamwall.focus import FocusController
from streamwall.online import OnlineAnnotation
from streamwall.slots import FocusState, SlotPool


@dataclass
class AppContext:
    """All mutable dashboard state, owned by the entry point and passed to each component."""

    settings: Settings
    bus: EventBus
    roster: Roster
    pool: SlotPool
    focus: FocusController
    online: OnlineAnnotation
    sidebar_collapsed: bool = False

    @property
    def focus_state(self) -> FocusState:
        return self.pool.focus


def build_context(settings: Settings) -> AppContext:
    bus = EventBus()
    roster = Roster()
    pool = SlotPool(capacity=settings.max_players, focus=FocusState(), bus=bus)
    return AppContext(
        settings=settings,
        bus=bus,
        roster=roster,
        pool=pool,
        focus=FocusController(pool=pool, roster=roster, bus=bus),
        online=OnlineAnnotation(bus),
    )

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from streamwall.channels import Roster
from streamwall.events import ChannelDeactivated, EmptyStateChanged, EventBus, FocusChanged, LayoutApplied
from streamwall.layout import GridLayout, Placement, compute_layout
from streamwall.online import OnlineAnnotation
from streamwall.player import OFFLINE, ONLINE, PLAYING, PlayerFactory, PlayerHandle
from streamwall.slots import FocusState, SlotPool

logger = logging.getLogger(__name__)

ROLE_FOCUS = "focus"
ROLE_TILE = "tile"


class Surface(Protocol):
    """Where player containers live. The textual grid implements this; so do test fakes."""

    def create_container(self, name: str) -> Any: ...

    def remove_container(self, container: Any) -> None: ...

    def set_role(self, container: Any, role: str) -> None: ...

    def apply_layout(self, layout: GridLayout, placed: List[Tuple[str, Any, Placement]]) -> None: ...

    def set_empty(self, empty: bool) -> None: ...


@dataclass
class PlayerEntry:
    name: str
    container: Any
    # None when the player backend failed; the slot is kept as a placeholder.
    player: Optional[PlayerHandle]
    role: str = ROLE_TILE


class Reconciler:
    """Keeps containers and players aligned with the live set and focus.

    An entry exists exactly while its channel is live. Passes only create
    and destroy entries for channels entering or leaving the live set, so
    a layout change never recreates a player.
    """

    def __init__(
        self,
        *,
        roster: Roster,
        pool: SlotPool,
        online: OnlineAnnotation,
        bus: EventBus,
        surface: Surface,
        player_factory: PlayerFactory,
        side_width: int = 24,
        branding_height: int = 3,
    ) -> None:
        self.roster = roster
        self.pool = pool
        self.online = online
        self.bus = bus
        self.surface = surface
        self.player_factory = player_factory
        self.side_width = side_width
        self.branding_height = branding_height
        self.entries: Dict[str, PlayerEntry] = {}
        self.layout: Optional[GridLayout] = None
        self._empty: Optional[bool] = None

        bus.subscribe(ChannelDeactivated, self._on_deactivated)
        bus.subscribe(FocusChanged, self._on_focus_changed)

    @property
    def focus(self) -> FocusState:
        return self.pool.focus

    def player(self, name: str) -> Optional[PlayerHandle]:
        entry = self.entries.get(name)
        return entry.player if entry else None

    # ── signals ────────────────────────────────────────────────────────────
    def _on_deactivated(self, event: ChannelDeactivated) -> None:
        self.destroy(event.name)

    def _on_focus_changed(self, event: FocusChanged) -> None:
        prior = self.player(event.previous) if event.previous else None
        if prior is not None:
            prior.set_muted(True)
        new = self.player(event.current) if event.current else None
        if new is not None:
            new.set_muted(False)

    # ── lifecycle ──────────────────────────────────────────────────────────
    def create(self, name: str) -> PlayerEntry:
        container = self.surface.create_container(name)
        player: Optional[PlayerHandle] = None
        try:
            player = self.player_factory(container, name, name != self.focus.current)
        except Exception:
            logger.exception("Player creation failed for %r", name)
        if player is not None:
            self._bind(name, player)
        entry = PlayerEntry(name=name, container=container, player=player)
        self.entries[name] = entry
        return entry

    def _bind(self, name: str, player: PlayerHandle) -> None:
        def on_playing() -> None:
            if self.focus.current == name:
                player.set_muted(False)

        player.add_listener(PLAYING, on_playing)
        player.add_listener(ONLINE, lambda: self.online.add(name))
        player.add_listener(OFFLINE, lambda: self.online.discard(name))

    def destroy(self, name: str) -> None:
        entry = self.entries.pop(name, None)
        if entry is None:
            return
        self.online.discard(name)
        if entry.player is not None:
            try:
                entry.player.destroy()
            except Exception:
                logger.exception("Player teardown failed for %r", name)
        self.surface.remove_container(entry.container)

    def destroy_all(self) -> None:
        for name in list(self.entries):
            self.destroy(name)

    # ── pass ───────────────────────────────────────────────────────────────
    def reconcile(self) -> GridLayout:
        for name in list(self.entries):
            if not self.pool.is_live(name):
                self.destroy(name)

        ordered = [name for name in self.roster.names() if self.pool.is_live(name)]
        for name in ordered:
            if name not in self.entries:
                self.create(name)

        focus = self.focus.current
        for name, entry in self.entries.items():
            role = ROLE_FOCUS if name == focus else ROLE_TILE
            if role != entry.role:
                entry.role = role
                self.surface.set_role(entry.container, role)

        tiles = [name for name in ordered if name != focus]
        has_focus = focus is not None and focus in self.entries
        layout = compute_layout(
            len(tiles),
            has_focus,
            side_width=self.side_width,
            branding_height=self.branding_height,
        )
        placed: List[Tuple[str, Any, Placement]] = []
        if has_focus and layout.focus is not None:
            placed.append((focus, self.entries[focus].container, layout.focus))
        for name, placement in zip(tiles, layout.tiles):
            placed.append((name, self.entries[name].container, placement))
        self.surface.apply_layout(layout, placed)
        self.layout = layout
        self.bus.publish(LayoutApplied(layout))

        empty = not self.entries
        if empty != self._empty:
            self._empty = empty
            self.surface.set_empty(empty)
            self.bus.publish(EmptyStateChanged(empty))
        return layout

"""
Unit test configuration for streamwall.

Provides isolated config/state directories plus fake players and a
recording surface so the core can be driven without a terminal or mpv.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from streamwall.config import Settings
from streamwall.context import AppContext, build_context
from streamwall.director import Director
from streamwall.layout import GridLayout, Placement
from streamwall.player import PlayerHandle
from streamwall.reconcile import Reconciler


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Keep tests away from the user's real config and saved state."""
    monkeypatch.setenv("STREAMWALL_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("STREAMWALL_STATE_DIR", str(tmp_path / "state"))
    yield


class FakePlayer(PlayerHandle):
    def __init__(self, name: str, muted: bool) -> None:
        super().__init__(name)
        self.muted = muted
        self.mute_calls: List[bool] = []
        self.play_calls = 0
        self.destroyed = False

    def set_muted(self, muted: bool) -> None:
        self.muted = muted
        self.mute_calls.append(muted)

    def play(self) -> None:
        self.play_calls += 1

    def destroy(self) -> None:
        self.destroyed = True

    def emit(self, event: str) -> None:
        self._emit(event)


class FakePlayerFactory:
    def __init__(self, failing: Tuple[str, ...] = ()) -> None:
        self.failing = set(failing)
        self.created: List[FakePlayer] = []

    def __call__(self, container: Any, name: str, muted: bool) -> FakePlayer:
        if name in self.failing:
            raise RuntimeError(f"embed failed for {name}")
        player = FakePlayer(name, muted)
        self.created.append(player)
        return player

    def created_for(self, name: str) -> List[FakePlayer]:
        return [p for p in self.created if p.name == name]


class RecordingSurface:
    def __init__(self) -> None:
        self.containers: Dict[str, object] = {}
        self.removed: List[str] = []
        self.roles: Dict[str, str] = {}
        self.layouts: List[GridLayout] = []
        self.placements: Dict[str, Placement] = {}
        self.empty: Optional[bool] = None

    def create_container(self, name: str) -> Any:
        container = {"name": name}
        self.containers[name] = container
        return container

    def remove_container(self, container: Any) -> None:
        self.removed.append(container["name"])
        self.containers.pop(container["name"], None)

    def set_role(self, container: Any, role: str) -> None:
        self.roles[container["name"]] = role

    def apply_layout(self, layout: GridLayout, placed: List[Tuple[str, Any, Placement]]) -> None:
        self.layouts.append(layout)
        self.placements = {name: placement for name, _, placement in placed}

    def set_empty(self, empty: bool) -> None:
        self.empty = empty


class World:
    """A fully wired dashboard core with fakes at the edges."""

    def __init__(self, *, capacity: int = 3, channels: Optional[List[str]] = None, failing: Tuple[str, ...] = ()):
        self.settings = Settings(max_players=capacity, start_all_timeout_s=0.05)
        self.ctx: AppContext = build_context(self.settings)
        for name in channels or []:
            self.ctx.roster.add(name)
        self.factory = FakePlayerFactory(failing=failing)
        self.surface = RecordingSurface()
        self.reconciler = Reconciler(
            roster=self.ctx.roster,
            pool=self.ctx.pool,
            online=self.ctx.online,
            bus=self.ctx.bus,
            surface=self.surface,
            player_factory=self.factory,
        )
        self.opened: List[str] = []
        self.director = Director(self.ctx, self.reconciler, open_url=self.opened.append)

    @property
    def pool(self):
        return self.ctx.pool

    @property
    def focus(self):
        return self.ctx.focus

    def player(self, name: str) -> Optional[FakePlayer]:
        return self.reconciler.player(name)


@pytest.fixture
def world():
    return World(capacity=3, channels=["alpha", "bravo", "charlie", "delta", "echo"])

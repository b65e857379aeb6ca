"""
Unit tests for the focus controller.
"""

from streamwall.events import ChannelDeactivated, FocusChanged

from conftest import World


def live_focus_invariant(world):
    current = world.focus.current
    return current is None or world.pool.is_live(current)


class TestRequestFocus:
    def test_activates_and_focuses(self, world):
        world.focus.request_focus("alpha")
        assert world.focus.current == "alpha"
        assert world.pool.is_live("alpha")
        assert world.pool.recency.to_list()[-1] == "alpha"

    def test_records_previous(self, world):
        world.focus.request_focus("alpha")
        world.focus.request_focus("bravo")
        assert world.focus.previous == "alpha"
        assert world.focus.current == "bravo"

    def test_first_focus_leaves_previous_unset(self, world):
        world.focus.request_focus("alpha")
        assert world.focus.previous is None

    def test_repeat_request_is_idempotent(self, world):
        world.director.activate("alpha")
        world.director.activate("bravo")
        world.director.set_focus("alpha")
        recency = world.pool.recency.to_list()
        mutes = {name: list(world.player(name).mute_calls) for name in ("alpha", "bravo")}
        seen = []
        world.ctx.bus.subscribe(FocusChanged, seen.append)
        world.ctx.bus.subscribe(ChannelDeactivated, seen.append)

        world.focus.request_focus("alpha")

        assert seen == []
        assert world.pool.recency.to_list() == recency
        assert {name: world.player(name).mute_calls for name in ("alpha", "bravo")} == mutes

    def test_focus_on_full_pool_evicts_other_channel(self, world):
        for name in ("alpha", "bravo", "charlie"):
            world.pool.activate(name)
        world.focus.request_focus("delta")
        assert world.focus.current == "delta"
        assert world.pool.is_live("delta")
        assert not world.pool.is_live("alpha")
        assert len(world.pool) == 3

    def test_mutes_prior_and_unmutes_new(self, world):
        world.director.activate("alpha")
        world.director.activate("bravo")
        world.director.set_focus("alpha")
        world.director.set_focus("bravo")
        assert world.player("alpha").mute_calls[-1] is True
        assert world.player("bravo").mute_calls[-1] is False

    def test_invariant_focus_is_live_after_every_operation(self):
        world = World(capacity=2, channels=["a", "b", "c", "d"])
        ops = [
            lambda: world.director.set_focus("a"),
            lambda: world.director.activate("b"),
            lambda: world.director.activate("c"),
            lambda: world.director.set_focus("d"),
            lambda: world.director.deactivate("d"),
            lambda: world.director.cycle_focus(1),
            lambda: world.director.recall_focus(),
            lambda: world.director.remove_channel("c"),
            lambda: world.director.cycle_focus(-1),
        ]
        for op in ops:
            op()
            assert live_focus_invariant(world)


class TestCycleFocus:
    def test_noop_when_nothing_live(self, world):
        world.focus.cycle_focus(1)
        assert world.focus.current is None

    def test_starts_at_first_live_when_unfocused(self, world):
        world.pool.activate("charlie")
        world.pool.activate("alpha")
        world.focus.cycle_focus(1)
        assert world.focus.current == "alpha"

    def test_wraps_in_roster_order(self, world):
        for name in ("alpha", "bravo", "charlie"):
            world.pool.activate(name)
        world.focus.request_focus("charlie")
        world.focus.cycle_focus(1)
        assert world.focus.current == "alpha"
        world.focus.cycle_focus(-1)
        assert world.focus.current == "charlie"
        world.focus.cycle_focus(-1)
        assert world.focus.current == "bravo"


class TestRecallFocus:
    def test_recalls_previous(self, world):
        world.focus.request_focus("alpha")
        world.focus.request_focus("bravo")
        world.focus.recall_focus()
        assert world.focus.current == "alpha"
        assert world.focus.previous == "bravo"

    def test_reactivates_previous_if_evicted(self, world):
        world.focus.request_focus("alpha")
        world.focus.request_focus("bravo")
        world.pool.deactivate("alpha")
        world.focus.recall_focus()
        assert world.focus.current == "alpha"
        assert world.pool.is_live("alpha")

    def test_ignores_previous_removed_from_roster(self, world):
        world.focus.request_focus("alpha")
        world.focus.request_focus("bravo")
        world.ctx.roster.remove("alpha")
        world.focus.recall_focus()
        assert world.focus.current == "bravo"

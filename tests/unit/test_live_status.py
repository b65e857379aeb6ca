"""
Unit tests for the batched live-status poller.
"""

import asyncio
import logging

import pytest
import requests

from streamwall.channels import Roster
from streamwall.events import EventBus, OnlineChanged
from streamwall.online import OnlineAnnotation
from streamwall.usecases.live_status import LiveStatusPoller, split_batches


class FakeStatusClient:
    """Answers stream_status from a fixed live set; batches listed in `fail` raise."""

    def __init__(self, live=(), fail=()):
        self.live = set(live)
        self.fail = set(fail)
        self.calls = []

    def stream_status(self, logins):
        self.calls.append(list(logins))
        if len(self.calls) in self.fail:
            raise requests.ConnectionError("network down")
        return {login: login in self.live for login in logins}


def make_poller(names, client, online=()):
    bus = EventBus()
    roster = Roster()
    roster.replace(list(names))
    annotation = OnlineAnnotation(bus)
    annotation.replace(online)
    poller = LiveStatusPoller(roster=roster, online=annotation, client=client, batch_size=35)
    return poller, annotation, bus


NAMES = [f"chan{i:02d}" for i in range(70)]


class TestSplitBatches:
    def test_seventy_names_make_two_batches(self):
        batches = split_batches(NAMES, 35)
        assert [len(b) for b in batches] == [35, 35]

    def test_remainder(self):
        assert [len(b) for b in split_batches(NAMES[:40], 35)] == [35, 5]

    def test_empty(self):
        assert split_batches([], 35) == []


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_one_request_per_batch(self):
        client = FakeStatusClient(live={"chan03", "chan50"})
        poller, online, _ = make_poller(NAMES, client)
        assert await poller.run_cycle() is True
        assert len(client.calls) == 2
        assert online.snapshot() == {"chan03", "chan50"}

    @pytest.mark.asyncio
    async def test_failed_batch_carries_forward_previous_members(self, caplog):
        # before: chan10 (batch 1) and chan40, chan41 (batch 2) were online
        client = FakeStatusClient(live={"chan03", "chan45"}, fail={2})
        poller, online, _ = make_poller(NAMES, client, online={"chan10", "chan40", "chan41"})

        with caplog.at_level(logging.WARNING, logger="streamwall.usecases.live_status"):
            await poller.run_cycle()

        # batch 1 result, plus batch 2's pre-cycle members, nothing new from batch 2
        assert online.snapshot() == {"chan03", "chan40", "chan41"}
        assert "Live check failed" in caplog.text

    @pytest.mark.asyncio
    async def test_replaces_annotation_once_per_cycle(self):
        client = FakeStatusClient(live={"chan01", "chan60"})
        poller, online, bus = make_poller(NAMES, client)
        seen = []
        bus.subscribe(OnlineChanged, seen.append)
        await poller.run_cycle()
        assert len(seen) == 1
        assert seen[0].online == {"chan01", "chan60"}

    @pytest.mark.asyncio
    async def test_single_flight(self):
        gate = asyncio.Event()

        client = FakeStatusClient(live={"chan01"})
        poller, online, _ = make_poller(NAMES[:3], client)

        async def slow_fetch(batch):
            await gate.wait()
            return client.stream_status(batch)

        poller._fetch = slow_fetch
        first = asyncio.create_task(poller.run_cycle())
        await asyncio.sleep(0)
        assert poller.running is True
        assert await poller.run_cycle() is False
        gate.set()
        assert await first is True
        assert poller.running is False
        assert online.snapshot() == {"chan01"}

    @pytest.mark.asyncio
    async def test_latch_cleared_after_unexpected_error(self):
        client = FakeStatusClient()
        poller, online, _ = make_poller(NAMES[:3], client)

        def boom(names):
            raise RuntimeError("replace failed")

        online.replace = boom
        with pytest.raises(RuntimeError):
            await poller.run_cycle()
        assert poller.running is False

    @pytest.mark.asyncio
    async def test_channel_removed_mid_cycle_is_not_annotated(self):
        gate = asyncio.Event()
        client = FakeStatusClient(live={"chan00", "chan01"})
        poller, online, _ = make_poller(NAMES[:2], client)

        async def slow_fetch(batch):
            await gate.wait()
            return client.stream_status(batch)

        poller._fetch = slow_fetch
        task = asyncio.create_task(poller.run_cycle())
        await asyncio.sleep(0)
        poller.roster.remove("chan01")
        gate.set()
        await task
        assert online.snapshot() == {"chan00"}


class TestCheckChannel:
    @pytest.mark.asyncio
    async def test_marks_live_channel_online(self):
        client = FakeStatusClient(live={"chan00"})
        poller, online, _ = make_poller(NAMES[:2], client)
        assert await poller.check_channel("chan00") is True
        assert "chan00" in online

    @pytest.mark.asyncio
    async def test_failure_is_not_fatal(self):
        client = FakeStatusClient(fail={1})
        poller, online, _ = make_poller(NAMES[:2], client, online={"chan01"})
        assert await poller.check_channel("chan00") is False
        assert online.snapshot() == {"chan01"}


class TestBackgroundLoop:
    @pytest.mark.asyncio
    async def test_start_runs_cycles_until_stopped(self):
        client = FakeStatusClient(live={"chan00"})
        poller, online, _ = make_poller(NAMES[:2], client)
        poller.interval = 0.01
        task = poller.start()
        assert poller.start() is task
        await asyncio.sleep(0.05)
        poller.stop()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert poller.cycles >= 2
        assert "chan00" in online

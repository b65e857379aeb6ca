from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Sequence, Set

from streamwall.channels import Roster
from streamwall.online import OnlineAnnotation

logger = logging.getLogger(__name__)


class StreamStatusSource(Protocol):
    def stream_status(self, logins: Sequence[str]) -> Dict[str, bool]: ...


def split_batches(names: Sequence[str], size: int) -> List[List[str]]:
    size = max(1, int(size))
    return [list(names[i : i + size]) for i in range(0, len(names), size)]


class LiveStatusPoller:
    """Refreshes the online annotation in batched requests.

    A failed batch keeps its previously known online members instead of
    marking them offline, so transient errors do not make badges flicker.
    The annotation is replaced once, after every batch has resolved.
    """

    def __init__(
        self,
        *,
        roster: Roster,
        online: OnlineAnnotation,
        client: StreamStatusSource,
        batch_size: int = 35,
        interval: float = 60.0,
    ) -> None:
        self.roster = roster
        self.online = online
        self.client = client
        self.batch_size = batch_size
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._running

    async def _fetch(self, batch: Sequence[str]) -> Dict[str, bool]:
        return await asyncio.to_thread(self.client.stream_status, list(batch))

    async def run_cycle(self) -> bool:
        """Poll every roster channel once. Returns False if a cycle was already running."""

        if self._running:
            return False
        self._running = True
        try:
            previous = self.online.snapshot()
            found: Set[str] = set()
            for batch in split_batches(self.roster.names(), self.batch_size):
                try:
                    status = await self._fetch(batch)
                except Exception as exc:
                    logger.warning("Live check failed for %d channel(s): %s", len(batch), exc)
                    found.update(name for name in batch if name in previous)
                    continue
                found.update(name for name in batch if status.get(name))

            # Channels removed while the cycle was suspended must not come back.
            self.online.replace(name for name in found if name in self.roster)
            self.cycles += 1
            return True
        finally:
            self._running = False

    async def check_channel(self, name: str) -> bool:
        """Advisory check for a single newly added channel."""

        try:
            status = await self._fetch([name])
        except Exception as exc:
            logger.warning("Live check failed for %s: %s", name, exc)
            return False
        live = bool(status.get(name))
        if live and name in self.roster:
            self.online.add(name)
        return live

    async def _loop(self) -> None:
        while True:
            await self.run_cycle()
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._loop())
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

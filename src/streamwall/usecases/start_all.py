from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from streamwall.events import BusyChanged, EventBus
from streamwall.focus import FocusController
from streamwall.player import PLAYING
from streamwall.reconcile import Reconciler

logger = logging.getLogger(__name__)


class ActivationSequencer:
    """Cycle every live channel through focus once so each player starts.

    Embedded players often refuse to autoplay until they have been focused
    and unmuted. Only one run may be active at a time; `busy` is published
    on the bus while it runs.
    """

    def __init__(
        self,
        *,
        focus: FocusController,
        reconciler: Reconciler,
        bus: EventBus,
        timeout: float = 1.5,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.focus = focus
        self.reconciler = reconciler
        self.bus = bus
        self.timeout = timeout
        self.on_change = on_change
        self._running = False

    @property
    def busy(self) -> bool:
        return self._running

    def _focus(self, name: str) -> None:
        self.focus.request_focus(name)
        self.reconciler.reconcile()
        if self.on_change is not None:
            self.on_change()

    async def wait_for_playing(self, name: str) -> bool:
        """Wait until the player reports playing or the timeout passes. True if it played."""

        player = self.reconciler.player(name)
        if player is None:
            return False

        loop = asyncio.get_running_loop()
        playing: asyncio.Future = loop.create_future()

        def on_playing() -> None:
            if not playing.done():
                playing.set_result(True)

        player.add_listener(PLAYING, on_playing)
        timer = loop.create_task(asyncio.sleep(self.timeout))
        try:
            await asyncio.wait({playing, timer}, return_when=asyncio.FIRST_COMPLETED)
            return playing.done() and not playing.cancelled()
        finally:
            player.remove_listener(PLAYING, on_playing)
            timer.cancel()
            if not playing.done():
                playing.cancel()

    async def run(self) -> bool:
        """Start every live player. Returns False when refused (already running or nothing live)."""

        if self._running:
            return False
        ordered = self.focus.ordered_live()
        if not ordered:
            return False

        self._running = True
        self.bus.publish(BusyChanged(True))
        try:
            original = self.focus.current
            logger.info("Starting %d player(s)", len(ordered))
            for name in ordered:
                if name not in self.focus.roster:
                    continue
                self._focus(name)
                player = self.reconciler.player(name)
                if player is not None:
                    player.play()
                await self.wait_for_playing(name)

            if original is not None and self.focus.pool.is_live(original):
                self._focus(original)
            else:
                live = self.focus.ordered_live()
                if live:
                    self._focus(live[0])
            logger.info("Start-all finished")
            return True
        finally:
            self._running = False
            self.bus.publish(BusyChanged(False))

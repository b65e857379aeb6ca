from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Any, Callable, Coroutine, List, Optional, Set

from streamwall.context import AppContext
from streamwall.events import RosterChanged, SidebarToggled
from streamwall.reconcile import Reconciler
from streamwall.snapshot import DebouncedSaver, Snapshot
from streamwall.usecases.live_status import LiveStatusPoller
from streamwall.usecases.start_all import ActivationSequencer

logger = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, Any]], Any]


def chat_popout_url(name: str) -> str:
    return f"https://www.twitch.tv/popout/{name}/chat?popout="


class Director:
    """Command surface of the dashboard.

    Each mutating command updates the logical state, runs one
    reconciliation pass and schedules a save.
    """

    def __init__(
        self,
        ctx: AppContext,
        reconciler: Reconciler,
        *,
        saver: Optional[DebouncedSaver] = None,
        poller: Optional[LiveStatusPoller] = None,
        spawn: Optional[Spawn] = None,
        open_url: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.ctx = ctx
        self.reconciler = reconciler
        self.saver = saver
        self.poller = poller
        self.spawn = spawn or self._spawn_task
        self.open_url = open_url or webbrowser.open
        self.sequencer = ActivationSequencer(
            focus=ctx.focus,
            reconciler=reconciler,
            bus=ctx.bus,
            timeout=ctx.settings.start_all_timeout_s,
            on_change=self._save,
        )
        self._tasks: Set[asyncio.Task] = set()
        self.chat_open = False

    # ── helpers ────────────────────────────────────────────────────────────
    def _spawn_task(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return None
        # The loop only keeps weak references to tasks.
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())

    def _save(self) -> None:
        if self.saver is not None:
            self.saver.schedule()

    def _commit(self) -> None:
        self.reconciler.reconcile()
        self._save()

    def ordered_live(self) -> List[str]:
        return self.ctx.focus.ordered_live()

    # ── live slots ─────────────────────────────────────────────────────────
    def activate(self, name: str) -> None:
        if name not in self.ctx.roster:
            return
        self.ctx.pool.activate(name)
        self._commit()

    def deactivate(self, name: str) -> None:
        self.ctx.pool.deactivate(name)
        self._commit()

    def toggle_live(self, name: str) -> None:
        if self.ctx.pool.is_live(name):
            self.deactivate(name)
        else:
            self.activate(name)

    # ── focus ──────────────────────────────────────────────────────────────
    def set_focus(self, name: str) -> None:
        if name not in self.ctx.roster or self.ctx.focus.current == name:
            return
        self.ctx.focus.request_focus(name)
        if self.chat_open:
            self.open_chat()
        self._commit()

    def cycle_focus(self, direction: int) -> None:
        before = self.ctx.focus.current
        self.ctx.focus.cycle_focus(direction)
        if self.ctx.focus.current != before:
            if self.chat_open:
                self.open_chat()
            self._commit()

    def recall_focus(self) -> None:
        previous = self.ctx.focus.previous
        if previous:
            self.set_focus(previous)

    # ── roster ─────────────────────────────────────────────────────────────
    def add_channel(self, raw: str) -> bool:
        name = self.ctx.roster.add(raw)
        if name is None:
            return False
        self.ctx.bus.publish(RosterChanged(added=(name,)))
        if self.poller is not None:
            self.spawn(self.poller.check_channel(name))
        self._save()
        return True

    def import_channels(self, text: str) -> int:
        added = self.ctx.roster.import_text(text)
        if added:
            self.ctx.bus.publish(RosterChanged(added=tuple(added)))
            self._save()
            if self.poller is not None:
                self.spawn(self.poller.run_cycle())
        return len(added)

    def remove_channel(self, name: str) -> None:
        if name not in self.ctx.roster:
            return
        self.ctx.pool.forget(name)
        self.ctx.focus.forget(name)
        self.ctx.online.discard(name)
        self.ctx.roster.remove(name)
        self.ctx.bus.publish(RosterChanged(removed=(name,)))
        self._commit()

    # ── chrome ─────────────────────────────────────────────────────────────
    def toggle_sidebar(self) -> bool:
        self.ctx.sidebar_collapsed = not self.ctx.sidebar_collapsed
        self.ctx.bus.publish(SidebarToggled(self.ctx.sidebar_collapsed))
        self._save()
        return self.ctx.sidebar_collapsed

    def chat_url(self) -> Optional[str]:
        focus = self.ctx.focus.current
        return chat_popout_url(focus) if focus else None

    def open_chat(self) -> bool:
        url = self.chat_url()
        if url is None:
            return False
        try:
            self.open_url(url)
        except Exception as exc:
            logger.warning("Could not open chat for %s: %s", url, exc)
            return False
        self.chat_open = True
        return True

    async def start_all(self) -> bool:
        return await self.sequencer.run()

    def sidebar_order(self) -> List[str]:
        """Online channels first, then live embeds, then the rest; alphabetical within each."""

        online = self.ctx.online
        pool = self.ctx.pool
        return sorted(
            self.ctx.roster.names(),
            key=lambda name: (name not in online, not pool.is_live(name), name),
        )

    # ── persistence ────────────────────────────────────────────────────────
    def snapshot(self) -> Snapshot:
        state = self.ctx.focus_state
        return Snapshot(
            channels=self.ctx.roster.names(),
            live=self.ctx.pool.live(),
            focus=state.current,
            recency=self.ctx.pool.recency.to_list(),
            previous_focus=state.previous,
            sidebar_collapsed=self.ctx.sidebar_collapsed,
        )

    def restore(self, snapshot: Optional[Snapshot]) -> None:
        if snapshot is not None:
            snap = snapshot.filtered()
            ctx = self.ctx
            ctx.roster.replace(snap.channels)
            ctx.pool.recency.replace(snap.recency)
            state = ctx.focus_state
            state.current = snap.focus
            state.previous = snap.previous_focus
            ctx.pool.restore(snap.live)
            if state.current is not None and not ctx.pool.is_live(state.current):
                state.current = None
            ctx.sidebar_collapsed = snap.sidebar_collapsed
            ctx.bus.publish(SidebarToggled(ctx.sidebar_collapsed))
        self.reconciler.reconcile()

    def shutdown(self) -> None:
        if self.poller is not None:
            self.poller.stop()
        if self.saver is not None:
            self.saver.flush()
        self.reconciler.destroy_all()

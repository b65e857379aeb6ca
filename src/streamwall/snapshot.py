from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from streamwall.config import state_dir

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    channels: List[str] = field(default_factory=list)
    live: List[str] = field(default_factory=list)
    focus: Optional[str] = None
    recency: List[str] = field(default_factory=list)
    previous_focus: Optional[str] = None
    sidebar_collapsed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channels": [{"name": name} for name in self.channels],
            "live": list(self.live),
            "focus": self.focus,
            "lru": list(self.recency),
            "lastFocus": self.previous_focus,
            "sidebarCollapsed": bool(self.sidebar_collapsed),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Snapshot":
        channels: List[str] = []
        for item in raw.get("channels") or []:
            name = item.get("name") if isinstance(item, dict) else None
            if isinstance(name, str) and name and name not in channels:
                channels.append(name)
        return cls(
            channels=channels,
            live=[n for n in raw.get("live") or [] if isinstance(n, str)],
            focus=raw.get("focus") if isinstance(raw.get("focus"), str) else None,
            recency=[n for n in raw.get("lru") or [] if isinstance(n, str)],
            previous_focus=raw.get("lastFocus") if isinstance(raw.get("lastFocus"), str) else None,
            sidebar_collapsed=bool(raw.get("sidebarCollapsed") or False),
        )

    def filtered(self) -> "Snapshot":
        """Drop every reference to a channel that is not in `channels`."""

        valid = set(self.channels)
        recency: List[str] = []
        for name in self.recency:
            if name in valid and name not in recency:
                recency.append(name)
        live: List[str] = []
        for name in self.live:
            if name in valid and name not in live:
                live.append(name)
        return Snapshot(
            channels=list(self.channels),
            live=live,
            focus=self.focus if self.focus in valid else None,
            recency=recency,
            previous_focus=self.previous_focus if self.previous_focus in valid else None,
            sidebar_collapsed=self.sidebar_collapsed,
        )


def snapshot_path() -> Path:
    return state_dir() / "state.json"


def load_snapshot(path: Optional[Path] = None) -> Optional[Snapshot]:
    path = path or snapshot_path()
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            return None
        return Snapshot.from_dict(raw)
    except Exception as exc:
        logger.warning("Ignoring corrupt state at %s: %s", path, exc)
        return None


def save_snapshot(snapshot: Snapshot, path: Optional[Path] = None) -> None:
    path = path or snapshot_path()
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(snapshot.to_dict(), indent=2) + "\n", encoding="utf-8")
    os.replace(tmp, path)


class DebouncedSaver:
    """Coalesce saves: the write happens once, `delay` seconds after the last request."""

    def __init__(
        self,
        provider: Callable[[], Snapshot],
        *,
        delay: float = 0.3,
        path: Optional[Path] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.provider = provider
        self.delay = delay
        self.path = path
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No loop (plain scripts): write through.
                self.flush()
                return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._write()

    def flush(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._write()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _write(self) -> None:
        try:
            save_snapshot(self.provider(), self.path)
            self.writes += 1
        except Exception as exc:
            logger.warning("Could not save state: %s", exc)

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

_NAME_RE = re.compile(r"^[a-z0-9_]+$")
_WHITESPACE_RE = re.compile(r"\s+")
_LIST_SPLIT_RE = re.compile(r"[\n,]+")


class ChannelValidationError(ValueError):
    pass


@dataclass(frozen=True)
class Channel:
    name: str


def normalize_channel_name(raw: str) -> Optional[str]:
    """Return the canonical channel login for user input, or None if it is malformed."""

    name = _WHITESPACE_RE.sub("", (raw or "").strip().lower())
    if not name or not _NAME_RE.match(name):
        return None
    return name


def require_channel_name(raw: str) -> str:
    name = normalize_channel_name(raw)
    if name is None:
        raise ChannelValidationError(f"Invalid channel name: {raw!r}")
    return name


def parse_channel_list(text: str) -> List[str]:
    out: List[str] = []
    for part in _LIST_SPLIT_RE.split(text or ""):
        name = normalize_channel_name(part)
        if name:
            out.append(name)
    return out


class Roster:
    """Ordered collection of channels. Order is insertion order and drives tile order."""

    def __init__(self, channels: Optional[List[Channel]] = None) -> None:
        self._channels: List[Channel] = []
        for ch in channels or []:
            if ch.name not in self:
                self._channels.append(ch)

    def __contains__(self, name: object) -> bool:
        return any(ch.name == name for ch in self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __iter__(self) -> Iterator[Channel]:
        return iter(list(self._channels))

    def names(self) -> List[str]:
        return [ch.name for ch in self._channels]

    def index(self, name: str) -> int:
        for i, ch in enumerate(self._channels):
            if ch.name == name:
                return i
        raise KeyError(name)

    def add(self, raw: str) -> Optional[str]:
        """Add a channel; returns the normalized name, or None if invalid or already present."""

        name = normalize_channel_name(raw)
        if name is None or name in self:
            return None
        self._channels.append(Channel(name=name))
        return name

    def import_text(self, text: str) -> List[str]:
        added: List[str] = []
        for name in parse_channel_list(text):
            if name in self:
                continue
            self._channels.append(Channel(name=name))
            added.append(name)
        return added

    def replace(self, names: List[str]) -> None:
        self._channels = []
        for name in names:
            if name not in self:
                self._channels.append(Channel(name=name))

    def remove(self, name: str) -> bool:
        for i, ch in enumerate(self._channels):
            if ch.name == name:
                del self._channels[i]
                return True
        return False

from __future__ import annotations

import json
import logging
import shutil
import socket
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from platformdirs import user_cache_dir

logger = logging.getLogger(__name__)

PLAYING = "playing"
ONLINE = "online"
OFFLINE = "offline"

Dispatch = Callable[..., Any]
PlayerFactory = Callable[[Any, str, bool], "PlayerHandle"]


class PlayerError(RuntimeError):
    pass


def channel_url(name: str) -> str:
    return f"https://www.twitch.tv/{name}"


def _direct_dispatch(callback: Callable[..., Any], *args: Any) -> None:
    callback(*args)


class PlayerHandle:
    """Embedded player for one channel.

    Listeners are called with no arguments. Backends that produce events on
    another thread hand them to `dispatch`, which must run the callback on
    the event loop.
    """

    def __init__(self, name: str, *, dispatch: Optional[Dispatch] = None) -> None:
        self.name = name
        self._dispatch = dispatch or _direct_dispatch
        self._listeners: Dict[str, List[Callable[[], None]]] = {}

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        try:
            self._listeners.get(event, []).remove(callback)
        except ValueError:
            pass

    def _fire(self, event: str) -> None:
        for cb in list(self._listeners.get(event, ())):
            try:
                cb()
            except Exception:
                logger.exception("%s listener failed for %s", event, self.name)

    def _emit(self, event: str) -> None:
        self._dispatch(self._fire, event)

    def set_muted(self, muted: bool) -> None:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def destroy(self) -> None:
        raise NotImplementedError


class PreviewPlayer(PlayerHandle):
    """Stand-in used when no player backend is installed."""

    def __init__(self, name: str, *, muted: bool = True, dispatch: Optional[Dispatch] = None) -> None:
        super().__init__(name, dispatch=dispatch)
        self.muted = muted
        self.destroyed = False

    def set_muted(self, muted: bool) -> None:
        self.muted = bool(muted)

    def play(self) -> None:
        return

    def destroy(self) -> None:
        self.destroyed = True
        self._listeners.clear()


@dataclass
class PlayerCommand:
    argv: List[str]
    ipc_path: Optional[Path] = None


def _ipc_socket_path(name: str) -> Optional[Path]:
    try:
        cache_dir = Path(user_cache_dir("streamwall"))
        cache_dir.mkdir(parents=True, exist_ok=True)
        path = cache_dir / f"mpv-{name}-{int(time.time() * 1000)}.sock"
    except OSError:
        return None
    # Stale sockets would block a new mpv instance.
    path.unlink(missing_ok=True)
    return path


def build_mpv_command(name: str, *, muted: bool) -> Optional[PlayerCommand]:
    if not shutil.which("mpv"):
        return None
    ipc = _ipc_socket_path(name)
    argv = [
        "mpv",
        "--no-terminal",
        "--msg-level=all=fatal",
        "--force-window=immediate",
        f"--title={name}",
        f"--mute={'yes' if muted else 'no'}",
    ]
    if ipc is not None:
        argv.append(f"--input-ipc-server={ipc}")
    argv.append(channel_url(name))
    return PlayerCommand(argv=argv, ipc_path=ipc)


class MpvPlayer(PlayerHandle):
    """One mpv process per channel, controlled over its JSON IPC socket."""

    CONNECT_ATTEMPTS = 50

    def __init__(self, name: str, cmd: PlayerCommand, *, dispatch: Optional[Dispatch] = None) -> None:
        super().__init__(name, dispatch=dispatch)
        self.cmd = cmd
        self._stopped = threading.Event()
        self._events_sock: Optional[socket.socket] = None
        try:
            self.process = subprocess.Popen(
                cmd.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise PlayerError(f"Could not launch {cmd.argv[0]}: {exc}") from exc

        rc = self.process.poll()
        if rc is not None and rc != 0:
            raise PlayerError(f"Player exited immediately (code {rc})")

        self._reader: Optional[threading.Thread] = None
        if cmd.ipc_path is not None:
            self._reader = threading.Thread(target=self._read_events, name=f"mpv-events-{name}", daemon=True)
            self._reader.start()

    def _connect(self) -> Optional[socket.socket]:
        ipc = self.cmd.ipc_path
        if ipc is None:
            return None
        for _ in range(self.CONNECT_ATTEMPTS):
            if self._stopped.is_set() or self.process.poll() is not None:
                return None
            if ipc.exists():
                s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                try:
                    s.connect(str(ipc))
                    return s
                except OSError:
                    s.close()
            time.sleep(0.1)
        return None

    def _read_events(self) -> None:
        s = self._connect()
        if s is None:
            return
        self._events_sock = s
        buf = b""
        try:
            while not self._stopped.is_set():
                chunk = s.recv(4096)
                if not chunk:
                    break
                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    self._handle_event_line(line)
        except OSError:
            pass
        finally:
            try:
                s.close()
            except OSError:
                pass

    def _handle_event_line(self, line: bytes) -> None:
        try:
            msg = json.loads(line.decode("utf-8", errors="replace"))
        except ValueError:
            return
        event = msg.get("event") if isinstance(msg, dict) else None
        if event == "playback-restart":
            self._emit(PLAYING)
            self._emit(ONLINE)
        elif event == "end-file" and msg.get("reason") == "error":
            self._emit(OFFLINE)

    def _ipc_request(self, payload: dict) -> Optional[dict]:
        ipc = self.cmd.ipc_path
        if ipc is None or not ipc.exists():
            return None
        req = (json.dumps(payload) + "\n").encode("utf-8", errors="replace")
        s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            s.settimeout(0.25)
            s.connect(str(ipc))
            s.sendall(req)
            buf = b""
            while len(buf) < 1024 * 1024:
                chunk = s.recv(4096)
                if not chunk:
                    break
                buf += chunk
                # mpv interleaves async events with the reply
                for line in buf.split(b"\n")[:-1]:
                    try:
                        resp = json.loads(line.decode("utf-8", errors="replace"))
                    except ValueError:
                        continue
                    if isinstance(resp, dict) and "error" in resp:
                        return resp
        except OSError as exc:
            logger.debug("mpv ipc request for %s failed: %s", self.name, exc)
        finally:
            s.close()
        return None

    def _command(self, *args: Any) -> bool:
        resp = self._ipc_request({"command": list(args)})
        return bool(resp and resp.get("error") == "success")

    def set_muted(self, muted: bool) -> None:
        self._command("set_property", "mute", bool(muted))

    def play(self) -> None:
        self._command("set_property", "pause", False)

    def destroy(self) -> None:
        self._stopped.set()
        self._listeners.clear()
        if self._events_sock is not None:
            try:
                self._events_sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        proc = self.process
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=1.5)
            except subprocess.TimeoutExpired:
                proc.kill()
        if self.cmd.ipc_path is not None:
            self.cmd.ipc_path.unlink(missing_ok=True)


def create_player_factory(preference: str = "mpv", *, dispatch: Optional[Dispatch] = None) -> PlayerFactory:
    """Return a callable `(container, name, muted) -> PlayerHandle` for the preferred backend."""

    pref = (preference or "mpv").strip().lower()
    warned = False

    def preview(container: Any, name: str, muted: bool) -> PlayerHandle:
        nonlocal warned
        if not warned:
            warned = True
            logger.warning("No player backend available; running in preview mode.")
        return PreviewPlayer(name, muted=muted, dispatch=dispatch)

    def mpv(container: Any, name: str, muted: bool) -> PlayerHandle:
        cmd = build_mpv_command(name, muted=muted)
        if cmd is None:
            return preview(container, name, muted)
        return MpvPlayer(name, cmd, dispatch=dispatch)

    if pref == "preview":
        return preview
    return mpv

"""
Unit tests for player backends and the backend factory.
"""

import json
import logging
from unittest.mock import patch

from streamwall import player as player_mod
from streamwall.player import (
    OFFLINE,
    ONLINE,
    PLAYING,
    MpvPlayer,
    PlayerHandle,
    PreviewPlayer,
    build_mpv_command,
    channel_url,
    create_player_factory,
)


class TestPreviewPlayer:
    def test_mute_and_destroy(self):
        p = PreviewPlayer("alpha", muted=True)
        p.set_muted(False)
        assert p.muted is False
        p.play()
        p.destroy()
        assert p.destroyed

    def test_listeners_and_failures(self, caplog):
        p = PreviewPlayer("alpha")
        seen = []

        def broken():
            raise RuntimeError("boom")

        p.add_listener(PLAYING, broken)
        p.add_listener(PLAYING, lambda: seen.append("playing"))
        with caplog.at_level(logging.ERROR, logger="streamwall.player"):
            p._emit(PLAYING)
        assert seen == ["playing"]
        assert "listener failed" in caplog.text

    def test_remove_listener(self):
        p = PreviewPlayer("alpha")
        seen = []
        cb = lambda: seen.append(1)  # noqa: E731
        p.add_listener(ONLINE, cb)
        p.remove_listener(ONLINE, cb)
        p.remove_listener(ONLINE, cb)
        p._emit(ONLINE)
        assert seen == []

    def test_dispatch_is_used(self):
        queued = []
        p = PreviewPlayer("alpha", dispatch=lambda cb, *args: queued.append((cb, args)))
        seen = []
        p.add_listener(PLAYING, lambda: seen.append(1))
        p._emit(PLAYING)
        assert seen == []
        cb, args = queued[0]
        cb(*args)
        assert seen == [1]


class TestFactory:
    def test_preview_preference(self):
        factory = create_player_factory("preview")
        assert isinstance(factory(None, "alpha", True), PreviewPlayer)

    def test_missing_mpv_falls_back_and_warns_once(self, caplog):
        factory = create_player_factory("mpv")
        with patch.object(player_mod.shutil, "which", return_value=None):
            with caplog.at_level(logging.WARNING, logger="streamwall.player"):
                first = factory(None, "alpha", True)
                second = factory(None, "bravo", False)
        assert isinstance(first, PreviewPlayer)
        assert second.muted is False
        assert caplog.text.count("preview mode") == 1


class TestMpvCommand:
    def test_none_without_binary(self):
        with patch.object(player_mod.shutil, "which", return_value=None):
            assert build_mpv_command("alpha", muted=True) is None

    def test_argv(self):
        with patch.object(player_mod.shutil, "which", return_value="/usr/bin/mpv"):
            cmd = build_mpv_command("alpha", muted=True)
        assert cmd.argv[0] == "mpv"
        assert "--mute=yes" in cmd.argv
        assert cmd.argv[-1] == channel_url("alpha")
        if cmd.ipc_path is not None:
            assert f"--input-ipc-server={cmd.ipc_path}" in cmd.argv


class TestMpvEvents:
    def make_player(self):
        p = MpvPlayer.__new__(MpvPlayer)
        PlayerHandle.__init__(p, "alpha")
        seen = []
        for event in (PLAYING, ONLINE, OFFLINE):
            p.add_listener(event, lambda e=event: seen.append(e))
        return p, seen

    def test_playback_restart_means_playing_and_online(self):
        p, seen = self.make_player()
        p._handle_event_line(json.dumps({"event": "playback-restart"}).encode())
        assert seen == [PLAYING, ONLINE]

    def test_error_end_means_offline(self):
        p, seen = self.make_player()
        p._handle_event_line(json.dumps({"event": "end-file", "reason": "eof"}).encode())
        p._handle_event_line(json.dumps({"event": "end-file", "reason": "error"}).encode())
        assert seen == [OFFLINE]

    def test_garbage_is_ignored(self):
        p, seen = self.make_player()
        p._handle_event_line(b"not json")
        p._handle_event_line(b"[1]")
        assert seen == []

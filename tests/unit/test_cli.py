"""
Unit tests for the command line entry point.
"""

import pytest

import streamwall
from streamwall import cli


def test_version(capsys):
    assert cli.main(["--version"]) == 0
    assert streamwall.__version__ in capsys.readouterr().out


def test_rejects_zero_capacity():
    with pytest.raises(SystemExit):
        cli.main(["--capacity", "0"])


def test_flags_reach_settings(monkeypatch):
    captured = {}

    class FakeApp:
        def __init__(self, settings):
            captured["settings"] = settings

        def run(self):
            captured["ran"] = True

    monkeypatch.setattr(cli, "StreamwallApp", FakeApp)
    monkeypatch.setattr(cli, "configure_logging", lambda debug=False: None)
    assert cli.main(["--capacity", "5", "--no-live-check"]) == 0
    assert captured["ran"]
    assert captured["settings"].max_players == 5
    assert captured["settings"].live_check_enabled is False

import argparse
import logging

import streamwall

from streamwall.config import load_settings, log_dir
from streamwall.tui import StreamwallApp


def configure_logging(*, debug: bool = False) -> None:
    # The terminal belongs to the dashboard, so logs go to a file.
    handler = logging.FileHandler(log_dir() / "streamwall.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger = logging.getLogger("streamwall")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="streamwall")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--capacity", type=int, default=None, help="Maximum number of live players")
    parser.add_argument("--no-live-check", action="store_true", help="Do not poll channel live status")
    args = parser.parse_args(argv)

    if args.version:
        print(f"streamwall {streamwall.__version__} ({streamwall.__file__})")
        return 0

    if args.capacity is not None and args.capacity < 1:
        parser.error("--capacity must be at least 1")

    configure_logging(debug=args.debug)

    settings = load_settings()
    if args.capacity is not None:
        settings.max_players = args.capacity
    if args.no_live_check:
        settings.live_check_enabled = False

    app = StreamwallApp(settings=settings)
    app.run()
    return 0

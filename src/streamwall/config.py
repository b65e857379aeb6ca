import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path

from platformdirs import user_config_dir, user_log_dir, user_state_dir

logger = logging.getLogger(__name__)

APP_NAME = "streamwall"


@dataclass
class Settings:
    # Maximum number of live embeds before the least recently used one is evicted.
    max_players: int = 14

    # Start-all waits this long for each player to report "playing".
    start_all_timeout_s: float = 1.5

    live_check_enabled: bool = True
    live_check_interval_s: float = 60.0
    live_check_batch_size: int = 35

    gql_url: str = "https://gql.twitch.tv/gql"
    # Public client id used by the twitch.tv web player.
    gql_client_id: str = "kimne78kx3ncx6brgo4mv6wki5h1ko"

    player_preference: str = "mpv"

    save_debounce_s: float = 0.3

    # Terminal cells for the fixed tracks of the tile grid.
    side_column_width: int = 24
    branding_row_height: int = 3


def config_dir() -> Path:
    override = os.environ.get("STREAMWALL_CONFIG_DIR")
    cfg_dir = Path(override) if override else Path(user_config_dir(APP_NAME))
    cfg_dir.mkdir(parents=True, exist_ok=True)
    return cfg_dir


def state_dir() -> Path:
    override = os.environ.get("STREAMWALL_STATE_DIR")
    st_dir = Path(override) if override else Path(user_state_dir(APP_NAME))
    st_dir.mkdir(parents=True, exist_ok=True)
    return st_dir


def log_dir() -> Path:
    lg_dir = Path(user_log_dir(APP_NAME))
    lg_dir.mkdir(parents=True, exist_ok=True)
    return lg_dir


def config_path() -> Path:
    return config_dir() / "config.json"


def load_settings() -> Settings:
    path = config_path()
    if not path.exists():
        return Settings()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        settings = Settings(**{k: v for k, v in raw.items() if k in Settings.__annotations__})
        if settings.max_players < 1:
            logger.warning("max_players %r is below 1; using 1", settings.max_players)
            settings.max_players = 1
        return settings
    except Exception as exc:
        logger.warning("Ignoring unreadable settings at %s: %s", path, exc)
        return Settings()


def save_settings(settings: Settings) -> None:
    path = config_path()
    path.write_text(json.dumps(asdict(settings), indent=2) + "\n", encoding="utf-8")

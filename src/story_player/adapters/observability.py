"""Process logging setup for the story player."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from story_player.core.runtime_settings import int_env

_CONFIGURED = False
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _level_env(name: str, default: int) -> int:
    level_name = os.environ.get(name, "").strip().upper()
    if not level_name:
        return default
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else default


def configure_runtime_logging(*, force: bool = False) -> None:
    """Attach console and rotating file handlers to the root logger once.

    `STORY_PLAYER_LOG_PATH=-` keeps logging on the console only. Save-routine
    chatter under `story_player.core.profile_manager` follows
    `STORY_PLAYER_AUTOSAVE_LOG_LEVEL` so periodic saves stay quiet by default.
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    raw_path = os.environ.get("STORY_PLAYER_LOG_PATH", "work/logs/story_player.log").strip()
    if raw_path != "-":
        log_path = Path(raw_path or "work/logs/story_player.log")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=log_path,
                maxBytes=int_env(
                    "STORY_PLAYER_LOG_MAX_BYTES",
                    2 * 1024 * 1024,
                    minimum=64 * 1024,
                    maximum=50 * 1024 * 1024,
                ),
                backupCount=int_env("STORY_PLAYER_LOG_BACKUP_COUNT", 5, minimum=1, maximum=50),
                encoding="utf-8",
            )
        )

    root = logging.getLogger()
    root.setLevel(_level_env("STORY_PLAYER_LOG_LEVEL", logging.INFO))
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger("story_player.core.profile_manager").setLevel(
        _level_env("STORY_PLAYER_AUTOSAVE_LOG_LEVEL", logging.INFO)
    )
    _CONFIGURED = True

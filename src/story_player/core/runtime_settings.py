"""Environment-driven runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import get_args

from story_player.core.profile_schema import DEFAULT_LANGUAGE, Language

DEFAULT_DB_PATH = Path("work/local/story_player.db")


@dataclass(frozen=True)
class AutoSaveConfig:
    """Auto-save timing in seconds."""

    debounce_seconds: float = 2.0
    interval_seconds: float = 30.0
    success_reset_seconds: float = 1.0


@dataclass(frozen=True)
class RuntimeSettings:
    """Resolved settings for one running player process."""

    db_path: Path = DEFAULT_DB_PATH
    profile_backend: str = "sqlite"
    autosave: AutoSaveConfig = field(default_factory=AutoSaveConfig)
    default_language: Language = DEFAULT_LANGUAGE


def int_env(name: str, default: int, *, minimum: int, maximum: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _language_env(name: str, default: Language) -> Language:
    raw = os.environ.get(name, "").strip().lower()
    for language in get_args(Language):
        if raw == language:
            return language
    return default


def load_runtime_settings() -> RuntimeSettings:
    """Read `STORY_PLAYER_*` variables; invalid values fall back to defaults."""
    db_raw = os.environ.get("STORY_PLAYER_DB_PATH", "").strip()
    backend = os.environ.get("STORY_PLAYER_PROFILE_BACKEND", "sqlite").strip().lower() or "sqlite"
    debounce_ms = int_env(
        "STORY_PLAYER_AUTOSAVE_DEBOUNCE_MS", 2000, minimum=0, maximum=60 * 1000
    )
    interval_ms = int_env(
        "STORY_PLAYER_AUTOSAVE_INTERVAL_MS", 30 * 1000, minimum=1000, maximum=60 * 60 * 1000
    )
    reset_ms = int_env(
        "STORY_PLAYER_AUTOSAVE_SUCCESS_RESET_MS", 1000, minimum=0, maximum=60 * 1000
    )
    return RuntimeSettings(
        db_path=Path(db_raw) if db_raw else DEFAULT_DB_PATH,
        profile_backend=backend,
        autosave=AutoSaveConfig(
            debounce_seconds=debounce_ms / 1000,
            interval_seconds=interval_ms / 1000,
            success_reset_seconds=reset_ms / 1000,
        ),
        default_language=_language_env("STORY_PLAYER_DEFAULT_LANGUAGE", DEFAULT_LANGUAGE),
    )

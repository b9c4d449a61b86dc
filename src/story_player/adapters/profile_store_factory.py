"""Factory for selecting the profile persistence backend."""

from __future__ import annotations

import os
from pathlib import Path

from story_player.adapters.memory_profile_store import MemoryProfileStore
from story_player.adapters.sqlite_profile_store import SQLiteProfileStore
from story_player.domain.ports import ProfileStore


def create_profile_store(*, db_path: Path, backend: str | None = None) -> ProfileStore:
    """Build the configured store; `STORY_PLAYER_PROFILE_BACKEND` picks the default."""
    if backend is None:
        backend = os.environ.get("STORY_PLAYER_PROFILE_BACKEND", "sqlite")
    backend = backend.strip().lower()
    if backend in {"", "sqlite"}:
        return SQLiteProfileStore(db_path=db_path)
    if backend == "memory":
        return MemoryProfileStore()
    raise RuntimeError(
        "Unsupported STORY_PLAYER_PROFILE_BACKEND value. Expected sqlite or memory."
    )

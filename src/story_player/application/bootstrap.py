"""Composition of the profile store and manager from runtime settings."""

from __future__ import annotations

import logging

from story_player.adapters.profile_store_factory import create_profile_store
from story_player.core.profile_manager import ProfileManager
from story_player.core.runtime_settings import RuntimeSettings, load_runtime_settings
from story_player.domain.ports import Scheduler

logger = logging.getLogger(__name__)


async def open_profile_manager(
    settings: RuntimeSettings | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> ProfileManager:
    """Build the configured store and manager and open the store.

    Storage that cannot be opened is logged by the manager; the returned
    manager still serves playback and reports failed saves through its
    status.
    """
    resolved = settings or load_runtime_settings()
    store = create_profile_store(db_path=resolved.db_path, backend=resolved.profile_backend)
    manager = ProfileManager.from_settings(store, resolved, scheduler=scheduler)
    ready = await manager.initialize()
    logger.info(
        "player.start backend=%s db_path=%s storage_ready=%s",
        resolved.profile_backend,
        resolved.db_path,
        ready,
    )
    return manager

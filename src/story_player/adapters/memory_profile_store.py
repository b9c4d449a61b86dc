"""In-process profile store for sessions without durable storage."""

from __future__ import annotations

import time

from story_player.core.profile_schema import KidProfile
from story_player.domain.errors import StorageError
from story_player.domain.models import SaveResult


class MemoryProfileStore:
    """Keeps serialized profiles in a dict for the lifetime of the process."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}
        self._initialized = False

    def is_initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        self._initialized = True

    async def close(self) -> None:
        self._initialized = False

    async def get(self, profile_id: str) -> KidProfile | None:
        self._require_initialized()
        document = self._documents.get(profile_id)
        if document is None:
            return None
        return KidProfile.model_validate_json(document)

    async def put(self, profile: KidProfile) -> SaveResult:
        stamp = int(time.time() * 1000)
        if not self._initialized:
            return SaveResult(success=False, error="Profile store is not initialized.", timestamp=stamp)
        self._documents[profile.id] = profile.model_dump_json()
        return SaveResult(success=True, timestamp=stamp)

    async def delete(self, profile_id: str) -> bool:
        self._require_initialized()
        return self._documents.pop(profile_id, None) is not None

    async def list_all(self) -> list[KidProfile]:
        self._require_initialized()
        profiles = [KidProfile.model_validate_json(document) for document in self._documents.values()]
        profiles.sort(key=lambda profile: profile.name)
        profiles.sort(key=lambda profile: profile.last_played_at_utc, reverse=True)
        return profiles

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageError("Profile store is not initialized.")

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest

from story_player.core.content_catalog import ContentCatalog
from story_player.core.profile_schema import KidProfile
from story_player.domain.errors import StorageError
from story_player.domain.models import SaveResult

FIXTURES = Path(__file__).resolve().parent / "fixtures"
CONTENT_DIR = FIXTURES / "content"


class RecordingStore:
    """Profile store double that records writes and can block or fail them."""

    def __init__(self) -> None:
        self.puts: list[KidProfile] = []
        self.documents: dict[str, KidProfile] = {}
        self.gate: asyncio.Event | None = None
        self.fail_with: str | None = None
        self.raise_on_put: bool = False
        self.raise_on_get: bool = False
        self.active_writes = 0
        self.max_active_writes = 0
        self._initialized = True

    def is_initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        self._initialized = True

    async def close(self) -> None:
        self._initialized = False

    async def get(self, profile_id: str) -> KidProfile | None:
        if self.raise_on_get:
            raise StorageError("read failed")
        stored = self.documents.get(profile_id)
        return stored.model_copy(deep=True) if stored is not None else None

    async def put(self, profile: KidProfile) -> SaveResult:
        self.active_writes += 1
        self.max_active_writes = max(self.max_active_writes, self.active_writes)
        try:
            self.puts.append(profile)
            if self.gate is not None:
                await self.gate.wait()
            if self.raise_on_put:
                raise StorageError("write failed")
            if self.fail_with is not None:
                return SaveResult(success=False, error=self.fail_with, timestamp=_now_ms())
            self.documents[profile.id] = profile.model_copy(deep=True)
            return SaveResult(success=True, timestamp=_now_ms())
        finally:
            self.active_writes -= 1

    async def delete(self, profile_id: str) -> bool:
        return self.documents.pop(profile_id, None) is not None

    async def list_all(self) -> list[KidProfile]:
        return list(self.documents.values())


def _now_ms() -> int:
    return int(time.time() * 1000)


@pytest.fixture()
def catalog() -> ContentCatalog:
    return ContentCatalog.from_directory(CONTENT_DIR)


@pytest.fixture()
def recording_store() -> RecordingStore:
    return RecordingStore()

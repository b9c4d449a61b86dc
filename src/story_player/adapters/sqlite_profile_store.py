"""SQLite-backed persistence for kid profiles."""

from __future__ import annotations

import asyncio
import sqlite3
import time
from pathlib import Path

from pydantic import ValidationError

from story_player.core.profile_schema import KidProfile
from story_player.domain.errors import StorageError, StorageUnavailable
from story_player.domain.models import SaveResult


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SQLiteProfileStore:
    """Persist and query kid profiles in one SQLite database.

    Blocking sqlite calls run in a worker thread with a fresh connection per
    operation, so the event loop never waits on disk I/O.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def is_initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        """Create the database file and schema; raise when storage is unusable."""
        try:
            await asyncio.to_thread(self._initialize_schema)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailable(f"Cannot open profile database {self._db_path}: {exc}") from exc
        self._initialized = True

    async def close(self) -> None:
        self._initialized = False

    async def get(self, profile_id: str) -> KidProfile | None:
        self._require_initialized()
        try:
            row = await asyncio.to_thread(self._select_one, profile_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read profile {profile_id}: {exc}") from exc
        if row is None:
            return None
        return self._profile_from_row(row)

    async def put(self, profile: KidProfile) -> SaveResult:
        """Insert or replace one profile; failures are reported, not raised."""
        if not self._initialized:
            return SaveResult(
                success=False, error="Profile store is not initialized.", timestamp=_epoch_ms()
            )
        try:
            await asyncio.to_thread(self._upsert, profile)
        except sqlite3.Error as exc:
            return SaveResult(success=False, error=str(exc), timestamp=_epoch_ms())
        return SaveResult(success=True, timestamp=_epoch_ms())

    async def delete(self, profile_id: str) -> bool:
        self._require_initialized()
        try:
            return await asyncio.to_thread(self._delete, profile_id)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete profile {profile_id}: {exc}") from exc

    async def list_all(self) -> list[KidProfile]:
        """Return every profile, most recently played first."""
        self._require_initialized()
        try:
            rows = await asyncio.to_thread(self._select_all)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to list profiles: {exc}") from exc
        return [self._profile_from_row(row) for row in rows]

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageError("Profile store is not initialized.")

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS kid_profiles (
                    profile_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at_utc TEXT NOT NULL,
                    last_played_at_utc TEXT NOT NULL,
                    profile_json TEXT NOT NULL,
                    saved_at_ms INTEGER NOT NULL
                )
                """
            )
            connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_profiles_name ON kid_profiles(name)"
            )
            connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_profiles_created ON kid_profiles(created_at_utc)"
            )
            connection.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_profiles_last_played
                ON kid_profiles(last_played_at_utc DESC)
                """
            )

    def _select_one(self, profile_id: str) -> sqlite3.Row | None:
        with self._connect() as connection:
            return connection.execute(
                "SELECT profile_id, profile_json FROM kid_profiles WHERE profile_id = ?",
                (profile_id,),
            ).fetchone()

    def _select_all(self) -> list[sqlite3.Row]:
        with self._connect() as connection:
            return connection.execute(
                """
                SELECT profile_id, profile_json
                FROM kid_profiles
                ORDER BY last_played_at_utc DESC, name ASC
                """
            ).fetchall()

    def _upsert(self, profile: KidProfile) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                INSERT INTO kid_profiles (
                    profile_id, name, created_at_utc, last_played_at_utc, profile_json, saved_at_ms
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(profile_id) DO UPDATE SET
                    name = excluded.name,
                    last_played_at_utc = excluded.last_played_at_utc,
                    profile_json = excluded.profile_json,
                    saved_at_ms = excluded.saved_at_ms
                """,
                (
                    profile.id,
                    profile.name,
                    profile.created_at_utc,
                    profile.last_played_at_utc,
                    profile.model_dump_json(),
                    _epoch_ms(),
                ),
            )

    def _delete(self, profile_id: str) -> bool:
        with self._connect() as connection:
            cursor = connection.execute(
                "DELETE FROM kid_profiles WHERE profile_id = ?", (profile_id,)
            )
            return cursor.rowcount > 0

    @staticmethod
    def _profile_from_row(row: sqlite3.Row) -> KidProfile:
        try:
            return KidProfile.model_validate_json(str(row["profile_json"]))
        except ValidationError as exc:
            raise StorageError(f"Stored profile {row['profile_id']} is corrupt: {exc}") from exc

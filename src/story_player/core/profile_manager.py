"""Active-profile ownership with debounced and periodic auto-save."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from story_player.core.profile_schema import (
    DEFAULT_LANGUAGE,
    KidProfile,
    Language,
    apply_profile_update,
    apply_story_update,
    utc_now_iso,
)
from story_player.core.runtime_settings import AutoSaveConfig, RuntimeSettings
from story_player.core.scheduling import AsyncioScheduler
from story_player.domain.errors import NoActiveProfile, StorageError, StorageUnavailable
from story_player.domain.models import AutoSaveStatus, ProfileUpdate, StoryProgressUpdate
from story_player.domain.ports import ProfileStore, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

StatusListener = Callable[[AutoSaveStatus], None]


class ProfileManager:
    """Owns at most one active profile and schedules its durable writes.

    Mutations reset a debounce timer; a periodic timer runs while a profile
    is active. Both paths, `force_save`, and the flush on detach go through
    one save routine that allows a single write in flight. A debounced or
    flushed save requested during a write runs after it; a periodic tick
    during a write is skipped.
    """

    def __init__(
        self,
        store: ProfileStore,
        *,
        scheduler: Scheduler | None = None,
        config: AutoSaveConfig | None = None,
        default_language: Language = DEFAULT_LANGUAGE,
    ) -> None:
        self._store = store
        self._scheduler = scheduler or AsyncioScheduler()
        self._config = config or AutoSaveConfig()
        self._default_language = default_language
        self._profile: KidProfile | None = None
        self._status = AutoSaveStatus.IDLE
        self._status_version = 0
        self._listeners: list[StatusListener] = []
        self._debounce_timer: TimerHandle | None = None
        self._periodic_timer: TimerHandle | None = None
        self._idle_timer: TimerHandle | None = None
        self._in_flight: asyncio.Task[bool] | None = None
        self._queued: tuple[str, KidProfile] | None = None

    @classmethod
    def from_settings(
        cls,
        store: ProfileStore,
        settings: RuntimeSettings,
        *,
        scheduler: Scheduler | None = None,
    ) -> ProfileManager:
        """Build a manager with the auto-save timing and language from `settings`."""
        return cls(
            store,
            scheduler=scheduler,
            config=settings.autosave,
            default_language=settings.default_language,
        )

    # ---------- Read-only views ----------
    @property
    def profile(self) -> KidProfile | None:
        """Active profile; mutate it only through the update methods."""
        return self._profile

    @property
    def config(self) -> AutoSaveConfig:
        return self._config

    @property
    def status(self) -> AutoSaveStatus:
        return self._status

    @property
    def is_profile_loaded(self) -> bool:
        return self._profile is not None

    @property
    def is_auto_saving(self) -> bool:
        return self._status in {AutoSaveStatus.PENDING, AutoSaveStatus.SAVING}

    def require_profile(self) -> KidProfile:
        if self._profile is None:
            raise NoActiveProfile("No profile is loaded.")
        return self._profile

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Subscribe to status transitions; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- Lifecycle ----------
    async def initialize(self) -> bool:
        """Open the store; False means playback continues without saving."""
        if self._store.is_initialized():
            return True
        try:
            await self._store.init()
        except StorageUnavailable as exc:
            logger.error("profile.storage.unavailable error=%s", exc)
            return False
        logger.info("profile.storage.ready")
        return True

    def create_profile(self, name: str, age: int) -> KidProfile:
        """Build a fresh profile and make it active; nothing is written yet."""
        profile = KidProfile.new(name=name, age=age, language=self._default_language)
        self._activate(profile)
        logger.info("profile.created profile_id=%s", profile.id)
        return profile

    async def load_profile(self, profile_id: str) -> KidProfile | None:
        """Fetch a profile and make it active; None when it does not exist."""
        try:
            profile = await self._store.get(profile_id)
        except StorageError as exc:
            logger.error("profile.load.failed profile_id=%s error=%s", profile_id, exc)
            raise
        if profile is None:
            logger.info("profile.load.missing profile_id=%s", profile_id)
        self._activate(profile)
        return profile

    async def list_profiles(self) -> list[KidProfile]:
        return await self._store.list_all()

    async def delete_profile(self, profile_id: str) -> bool:
        """Delete a stored profile, detaching it first when it is active."""
        if self._profile is not None and self._profile.id == profile_id:
            dropped = self._debounce_timer is not None
            self._cancel_debounce()
            self._profile = None
            self._stop_periodic()
            await self.wait_for_saves()
            if dropped and self._status is AutoSaveStatus.PENDING:
                self._set_status(AutoSaveStatus.IDLE)
        deleted = await self._store.delete(profile_id)
        logger.info("profile.deleted profile_id=%s deleted=%s", profile_id, deleted)
        return deleted

    def clear_profile(self) -> None:
        """Detach the active profile; the stored record is kept."""
        self._detach()

    async def aclose(self) -> None:
        """Stop timers, flush pending changes, and wait for outstanding writes."""
        self._detach()
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None
        await self.wait_for_saves()

    async def wait_for_saves(self) -> None:
        """Wait until no write is in flight or queued."""
        while self._in_flight is not None:
            await asyncio.shield(self._in_flight)

    # ---------- Mutations ----------
    def update_profile(self, update: ProfileUpdate) -> None:
        profile = self._profile
        if profile is None:
            logger.warning("profile.update.ignored reason=no_active_profile")
            return
        apply_profile_update(profile, update)
        self._schedule_auto_save()

    def update_story_progress(self, update: StoryProgressUpdate) -> None:
        profile = self._profile
        if profile is None:
            logger.warning("profile.story_update.ignored reason=no_active_profile")
            return
        apply_story_update(profile.story, update)
        profile.last_played_at_utc = utc_now_iso()
        self._schedule_auto_save()

    def touch_last_played(self) -> None:
        """Refresh the last-played timestamp without scheduling a save."""
        if self._profile is not None:
            self._profile.last_played_at_utc = utc_now_iso()

    async def force_save(self) -> bool:
        """Write the active profile now, after any write already in flight."""
        profile = self._profile
        if profile is None:
            logger.warning("profile.force_save.ignored reason=no_active_profile")
            return False
        self._cancel_debounce()
        if self._queued is not None and self._queued[1] is profile:
            self._queued = None
        await self.wait_for_saves()
        task = asyncio.get_running_loop().create_task(self._run_save("force", profile))
        self._in_flight = task
        return await task

    # ---------- Auto-save policy ----------
    def _schedule_auto_save(self) -> None:
        self._cancel_debounce()
        self._debounce_timer = self._scheduler.call_later(
            self._config.debounce_seconds, self._on_debounce_elapsed
        )
        self._set_status(AutoSaveStatus.PENDING)

    def _on_debounce_elapsed(self) -> None:
        self._debounce_timer = None
        if self._profile is not None:
            self._launch_save("debounce", self._profile)

    def _start_periodic(self) -> None:
        if self._periodic_timer is None:
            self._periodic_timer = self._scheduler.call_later(
                self._config.interval_seconds, self._on_periodic_tick
            )

    def _stop_periodic(self) -> None:
        if self._periodic_timer is not None:
            self._periodic_timer.cancel()
            self._periodic_timer = None

    def _on_periodic_tick(self) -> None:
        self._periodic_timer = self._scheduler.call_later(
            self._config.interval_seconds, self._on_periodic_tick
        )
        if self._profile is None:
            return
        if self._in_flight is not None:
            logger.debug("profile.save.periodic_skipped profile_id=%s", self._profile.id)
            return
        self._launch_save("periodic", self._profile)

    def _cancel_debounce(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None

    def _activate(self, profile: KidProfile | None) -> None:
        if self._profile is not None and self._profile is not profile:
            self._detach()
        self._profile = profile
        if profile is None:
            self._stop_periodic()
        else:
            self._start_periodic()

    def _detach(self) -> None:
        previous = self._profile
        self._profile = None
        self._stop_periodic()
        if self._debounce_timer is not None:
            self._cancel_debounce()
            if previous is not None:
                self._launch_save("flush", previous)

    # ---------- Save routine ----------
    def _launch_save(self, reason: str, profile: KidProfile) -> None:
        if self._in_flight is not None:
            self._queued = (reason, profile)
            logger.debug("profile.save.queued reason=%s profile_id=%s", reason, profile.id)
            return
        self._in_flight = asyncio.get_running_loop().create_task(self._run_save(reason, profile))

    async def _run_save(self, reason: str, profile: KidProfile) -> bool:
        try:
            return await self._write(reason, profile)
        finally:
            self._in_flight = None
            queued, self._queued = self._queued, None
            if queued is not None:
                self._launch_save(*queued)

    async def _write(self, reason: str, profile: KidProfile) -> bool:
        snapshot = profile.model_copy(deep=True)
        self._set_status(AutoSaveStatus.SAVING)
        try:
            result = await self._store.put(snapshot)
        except StorageError as exc:
            logger.error(
                "profile.save.failed reason=%s profile_id=%s error=%s", reason, profile.id, exc
            )
            self._set_status(AutoSaveStatus.ERROR)
            return False
        if not result.success:
            logger.error(
                "profile.save.failed reason=%s profile_id=%s error=%s",
                reason,
                profile.id,
                result.error,
            )
            self._set_status(AutoSaveStatus.ERROR)
            return False
        logger.debug(
            "profile.save.ok reason=%s profile_id=%s timestamp=%s",
            reason,
            profile.id,
            result.timestamp,
        )
        self._set_status(AutoSaveStatus.SUCCESS)
        self._schedule_idle_reset()
        return True

    def _schedule_idle_reset(self) -> None:
        version = self._status_version

        def reset() -> None:
            self._idle_timer = None
            if self._status is AutoSaveStatus.SUCCESS and self._status_version == version:
                self._set_status(AutoSaveStatus.IDLE)

        if self._idle_timer is not None:
            self._idle_timer.cancel()
        self._idle_timer = self._scheduler.call_later(self._config.success_reset_seconds, reset)

    def _set_status(self, status: AutoSaveStatus) -> None:
        self._status = status
        self._status_version += 1
        for listener in list(self._listeners):
            listener(status)

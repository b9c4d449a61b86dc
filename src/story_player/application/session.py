"""Play session wiring the story engine to the active profile."""

from __future__ import annotations

import logging

from story_player.core.content_catalog import ContentCatalog
from story_player.core.profile_manager import ProfileManager
from story_player.core.story_engine import StoryEngine
from story_player.domain.errors import ContentNotFound
from story_player.domain.ports import ChallengeJudge

logger = logging.getLogger(__name__)


class StorySession:
    """One child's play session, from profile selection to logout.

    The engine works on a copy of the profile's story state and reports
    progress to the profile manager, which merges it and schedules saves.
    """

    def __init__(self, catalog: ContentCatalog, manager: ProfileManager, engine: StoryEngine) -> None:
        self._catalog = catalog
        self._manager = manager
        self._engine = engine
        self._closed = False

    @classmethod
    def start(cls, catalog: ContentCatalog, manager: ProfileManager) -> StorySession:
        """Open a session for the active profile, resuming its saved position."""
        profile = manager.require_profile()
        engine = StoryEngine(catalog, on_progress=manager.update_story_progress)
        saved = profile.story
        try:
            engine.resume(saved)
        except ContentNotFound as exc:
            logger.warning(
                "session.resume.failed profile_id=%s chapter=%s scene=%s error=%s",
                profile.id,
                saved.current_chapter,
                saved.current_scene,
                exc,
            )
            engine.resume(saved.model_copy(update={"current_scene": "", "current_dialogue_index": 0}))
        if engine.current_scene is None:
            chapter_id = saved.current_chapter if saved.current_chapter in catalog else None
            if chapter_id is None and catalog.chapter_ids():
                chapter_id = catalog.chapter_ids()[0]
            if chapter_id is not None:
                engine.load_chapter(chapter_id)
        manager.touch_last_played()
        logger.info(
            "session.start profile_id=%s chapter=%s scene=%s",
            profile.id,
            engine.state.current_chapter,
            engine.state.current_scene,
        )
        return cls(catalog, manager, engine)

    @property
    def engine(self) -> StoryEngine:
        return self._engine

    @property
    def manager(self) -> ProfileManager:
        return self._manager

    @property
    def catalog(self) -> ContentCatalog:
        return self._catalog

    @property
    def closed(self) -> bool:
        return self._closed

    def submit_code(self, challenge_id: str, code: str, judge: ChallengeJudge) -> bool:
        """Store a challenge submission and return the judge's verdict.

        Unknown challenge ids raise `ContentNotFound` before anything is stored.
        """
        challenge = self._catalog.find_challenge(challenge_id)
        if challenge is None:
            raise ContentNotFound(f"Challenge '{challenge_id}' not found.")
        self._engine.record_code_submission(challenge.id, code)
        passed = judge.judge(challenge, code)
        logger.info("session.code.judged challenge_id=%s passed=%s", challenge.id, passed)
        return passed

    async def close(self) -> bool:
        """Save once more and detach the profile; returns the save outcome."""
        if self._closed:
            return True
        self._closed = True
        saved = await self._manager.force_save()
        self._manager.clear_profile()
        logger.info("session.close saved=%s", saved)
        return saved

from __future__ import annotations

import logging

import pytest
from conftest import RecordingStore

from story_player.application.session import StorySession
from story_player.core.content_catalog import ContentCatalog
from story_player.core.content_schema import CodeChallenge
from story_player.core.profile_manager import ProfileManager
from story_player.core.profile_schema import KidProfile, StoryState
from story_player.core.scheduling import ManualScheduler
from story_player.domain.errors import ContentNotFound, NoActiveProfile
from story_player.domain.models import Transition


def _manager(store: RecordingStore) -> tuple[ProfileManager, ManualScheduler]:
    clock = ManualScheduler()
    return ProfileManager(store, scheduler=clock), clock


def test_session_requires_active_profile(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, _ = _manager(recording_store)
    with pytest.raises(NoActiveProfile):
        StorySession.start(catalog, manager)


@pytest.mark.asyncio
async def test_new_profile_starts_at_first_chapter(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, clock = _manager(recording_store)
    profile = manager.create_profile("Ana", 7)

    session = StorySession.start(catalog, manager)

    assert session.engine.state.current_scene == "ch1-scene1"
    assert profile.story.current_scene == "ch1-scene1"
    clock.advance(2.0)
    await manager.wait_for_saves()
    assert recording_store.puts[-1].story.current_scene == "ch1-scene1"


@pytest.mark.asyncio
async def test_progress_flows_into_profile_and_saves(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, clock = _manager(recording_store)
    profile = manager.create_profile("Ana", 7)
    session = StorySession.start(catalog, manager)
    engine = session.engine

    for _ in range(4):
        engine.next_dialogue()
    engine.record_code_submission("challenge1-1", 'print("Hello World")')
    clock.advance(2.0)
    await manager.wait_for_saves()

    assert len(recording_store.puts) == 1
    saved = recording_store.puts[0]
    assert saved.id == profile.id
    assert saved.story.current_scene == "ch1-scene2"
    assert saved.story.current_dialogue_index == 0
    assert saved.story.code_submissions == {"challenge1-1": 'print("Hello World")'}


@pytest.mark.asyncio
async def test_resume_continues_from_saved_position(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    stored = KidProfile.new(name="Ana", age=7)
    stored.story = StoryState(
        current_chapter=1, current_scene="ch1-scene4", current_dialogue_index=1
    )
    recording_store.documents[stored.id] = stored
    manager, _ = _manager(recording_store)
    await manager.load_profile(stored.id)

    session = StorySession.start(catalog, manager)

    assert session.engine.current_dialogue is not None
    assert session.engine.current_dialogue.id == "dialogue4-2"
    assert session.engine.next_dialogue() is Transition.CHAPTER_COMPLETED
    assert manager.require_profile().story.completed_chapters == [1]


@pytest.mark.asyncio
async def test_stale_saved_position_restarts_saved_chapter(
    catalog: ContentCatalog, recording_store: RecordingStore, caplog: pytest.LogCaptureFixture
) -> None:
    stored = KidProfile.new(name="Ana", age=7)
    stored.story = StoryState(
        current_chapter=2, current_scene="ch2-removed", completed_chapters=[1]
    )
    recording_store.documents[stored.id] = stored
    manager, _ = _manager(recording_store)
    await manager.load_profile(stored.id)

    with caplog.at_level(logging.WARNING, logger="story_player.application.session"):
        session = StorySession.start(catalog, manager)

    assert "session.resume.failed" in caplog.text
    state = session.engine.state
    assert state.current_chapter == 2
    assert state.current_scene == "ch2-start"
    assert state.completed_chapters == [1]


@pytest.mark.asyncio
async def test_close_saves_and_detaches_once(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, clock = _manager(recording_store)
    manager.create_profile("Ana", 7)
    session = StorySession.start(catalog, manager)
    session.engine.next_dialogue()

    assert await session.close() is True
    assert await session.close() is True

    assert session.closed is True
    assert manager.profile is None
    assert len(recording_store.puts) == 1
    assert recording_store.puts[0].story.current_dialogue_index == 1
    clock.advance(60.0)
    await manager.wait_for_saves()
    assert len(recording_store.puts) == 1


class ExpectedOutputJudge:
    """Passes code whose printed literal matches the first expected line."""

    def __init__(self) -> None:
        self.seen: list[tuple[str, str]] = []

    def judge(self, challenge: CodeChallenge, code: str) -> bool:
        self.seen.append((challenge.id, code))
        if challenge.accepts_any_output:
            return bool(code.strip())
        return f'print("{challenge.expected_lines[0]}")' in code


@pytest.mark.asyncio
async def test_submit_code_records_submission_and_returns_verdict(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, clock = _manager(recording_store)
    profile = manager.create_profile("Ana", 7)
    session = StorySession.start(catalog, manager)
    judge = ExpectedOutputJudge()

    assert session.submit_code("challenge1-1", 'print("Hello World")', judge) is True
    assert session.submit_code("challenge1-2", "", judge) is False

    assert judge.seen == [("challenge1-1", 'print("Hello World")'), ("challenge1-2", "")]
    assert profile.story.code_submissions == {
        "challenge1-1": 'print("Hello World")',
        "challenge1-2": "",
    }
    clock.advance(2.0)
    await manager.wait_for_saves()
    assert recording_store.puts[-1].story.code_submissions["challenge1-1"] == 'print("Hello World")'


def test_submit_code_rejects_unknown_challenge(
    catalog: ContentCatalog, recording_store: RecordingStore
) -> None:
    manager, _ = _manager(recording_store)
    profile = manager.create_profile("Ana", 7)
    session = StorySession.start(catalog, manager)
    judge = ExpectedOutputJudge()

    with pytest.raises(ContentNotFound, match="challenge9-9"):
        session.submit_code("challenge9-9", "print(1)", judge)

    assert judge.seen == []
    assert profile.story.code_submissions == {}

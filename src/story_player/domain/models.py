"""Value types exchanged between the engine, profile manager, and stores."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from story_player.core.profile_schema import ProfileSettings, StoryState


class AutoSaveStatus(str, Enum):
    """Persistence progress for the active profile, not story progress."""

    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SUCCESS = "success"
    ERROR = "error"


class Transition(str, Enum):
    """Outcome of one `next_dialogue` step."""

    ADVANCED = "advanced"
    SCENE_CHANGED = "scene_changed"
    CHAPTER_COMPLETED = "chapter_completed"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class SaveResult:
    """Outcome of one profile write, stamped by the store."""

    success: bool
    timestamp: int
    error: str | None = None


@dataclass(frozen=True)
class StoryProgressUpdate:
    """Partial story-state change; `None` marks a field as absent."""

    current_chapter: int | None = None
    current_scene: str | None = None
    current_dialogue_index: int | None = None
    completed_chapters: list[int] | None = None
    choices: dict[str, str] | None = None
    code_submissions: dict[str, str] | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial top-level profile change; `None` marks a field as absent."""

    name: str | None = None
    age: int | None = None
    achievements: list[str] | None = None
    settings: ProfileSettings | None = None
    story: StoryState | None = None

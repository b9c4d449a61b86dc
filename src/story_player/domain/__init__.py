"""Domain errors, value types, and ports for the story player."""

from story_player.domain.errors import (
    ContentNotFound,
    ContentValidationError,
    NoActiveProfile,
    StorageError,
    StorageUnavailable,
    StoryPlayerError,
)
from story_player.domain.models import (
    AutoSaveStatus,
    ProfileUpdate,
    SaveResult,
    StoryProgressUpdate,
    Transition,
)
from story_player.domain.ports import ChallengeJudge, ProfileStore, Scheduler, TimerHandle

__all__ = [
    "AutoSaveStatus",
    "ChallengeJudge",
    "ContentNotFound",
    "ContentValidationError",
    "NoActiveProfile",
    "ProfileStore",
    "ProfileUpdate",
    "SaveResult",
    "Scheduler",
    "StorageError",
    "StorageUnavailable",
    "StoryPlayerError",
    "StoryProgressUpdate",
    "TimerHandle",
    "Transition",
]

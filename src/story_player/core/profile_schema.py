"""Persisted kid profile and the story progress embedded in it."""

from __future__ import annotations

from dataclasses import fields
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from story_player.domain.models import ProfileUpdate, StoryProgressUpdate

Language = Literal["id", "en", "ja"]
DEFAULT_LANGUAGE: Language = "id"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 form."""
    return datetime.now(UTC).isoformat()


class ProfileModel(BaseModel):
    """Mutable models whose assignments are validated like construction."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, validate_assignment=True)


class StoryState(ProfileModel):
    """Progress coordinates within the content hierarchy."""

    current_chapter: int = Field(default=1, ge=1)
    current_scene: str = ""
    current_dialogue_index: int = Field(default=0, ge=0)
    completed_chapters: list[int] = Field(default_factory=list)
    choices: dict[str, str] = Field(default_factory=dict)
    code_submissions: dict[str, str] = Field(default_factory=dict)

    @field_validator("completed_chapters")
    @classmethod
    def _dedupe_chapters(cls, values: list[int]) -> list[int]:
        return list(dict.fromkeys(values))

    @property
    def is_positioned(self) -> bool:
        return bool(self.current_scene)


class ProfileSettings(ProfileModel):
    """Per-child preferences."""

    sound_enabled: bool = True
    music_enabled: bool = True
    language: Language = DEFAULT_LANGUAGE


class KidProfile(ProfileModel):
    """Full save record for one child; the unit of persistence."""

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=80)
    age: int = Field(ge=1, le=120)
    created_at_utc: str = Field(min_length=1)
    last_played_at_utc: str = Field(min_length=1)
    story: StoryState = Field(default_factory=StoryState)
    achievements: list[str] = Field(default_factory=list)
    settings: ProfileSettings = Field(default_factory=ProfileSettings)

    @field_validator("achievements")
    @classmethod
    def _dedupe_achievements(cls, values: list[str]) -> list[str]:
        normalized = [value.strip() for value in values if value.strip()]
        return list(dict.fromkeys(normalized))

    @classmethod
    def new(cls, *, name: str, age: int, language: Language = DEFAULT_LANGUAGE) -> KidProfile:
        """Build a fresh profile with a generated id and default progress."""
        now = utc_now_iso()
        return cls(
            id=uuid4().hex,
            name=name,
            age=age,
            created_at_utc=now,
            last_played_at_utc=now,
            settings=ProfileSettings(language=language),
        )


def _present_fields(update: ProfileUpdate | StoryProgressUpdate) -> dict[str, Any]:
    present: dict[str, Any] = {}
    for item in fields(update):
        value = getattr(update, item.name)
        if value is None:
            continue
        if isinstance(value, BaseModel):
            value = value.model_copy(deep=True)
        elif isinstance(value, (list, dict)):
            value = value.copy()
        present[item.name] = value
    return present


def _merge(target: ProfileModel, present: dict[str, Any]) -> None:
    """The merged record is validated before any field of `target` changes."""
    if not present:
        return
    merged = type(target).model_validate({**target.model_dump(), **present})
    for name in present:
        setattr(target, name, getattr(merged, name))


def apply_profile_update(profile: KidProfile, update: ProfileUpdate) -> None:
    """Shallow-merge present fields of `update` into `profile`, all or nothing."""
    _merge(profile, _present_fields(update))


def apply_story_update(state: StoryState, update: StoryProgressUpdate) -> None:
    """Shallow-merge present fields of `update` into `state`, all or nothing."""
    _merge(state, _present_fields(update))

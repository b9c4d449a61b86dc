"""Authored story content: chapters, scenes, dialogue nodes, and challenges."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,119}$")

Expression = Literal["neutral", "happy", "thinking", "excited", "confused", "proud"]
Animation = Literal["bounce", "shake", "nod", "idle"]
ScreenPosition = Literal["left", "center", "right"]
NodeType = Literal["dialogue", "code_challenge", "choice"]


class ContentModel(BaseModel):
    """Strict, immutable model configuration for authored content."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)


def _validate_id(value: str, *, field_name: str) -> str:
    if not _ID_PATTERN.match(value):
        raise ValueError(f"{field_name} must match `{_ID_PATTERN.pattern}`.")
    return value


def _duplicates(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    repeated: list[str] = []
    for value in values:
        if value in seen and value not in repeated:
            repeated.append(value)
        seen.add(value)
    return repeated


class CharacterDisplay(ContentModel):
    """How a speaker is shown while a node is on screen."""

    character_id: str = Field(min_length=1, max_length=120)
    expression: Expression = "neutral"
    position: ScreenPosition = "center"
    animation: Animation | None = None
    visible: bool = True


class Choice(ContentModel):
    """A player-selectable edge to another scene."""

    id: str = Field(min_length=1, max_length=120)
    text: str = Field(min_length=1, max_length=500)
    next_scene_id: str = Field(min_length=1, max_length=120)

    @field_validator("id")
    @classmethod
    def _validate_choice_id(cls, value: str) -> str:
        return _validate_id(value, field_name="Choice id")


class CodeChallenge(ContentModel):
    """An embedded exercise whose grading belongs to an external judge."""

    id: str = Field(min_length=1, max_length=120)
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1, max_length=4000)
    starter_code: str = ""
    expected_output: str | list[str] | None = None
    allow_any_output: bool = False
    hints: list[str] = Field(default_factory=list)
    max_attempts: int = Field(default=3, ge=1, le=100)

    @field_validator("id")
    @classmethod
    def _validate_challenge_id(cls, value: str) -> str:
        return _validate_id(value, field_name="Challenge id")

    @field_validator("hints")
    @classmethod
    def _drop_blank_hints(cls, values: list[str]) -> list[str]:
        return [value.strip() for value in values if value.strip()]

    @model_validator(mode="after")
    def _require_output_spec(self) -> CodeChallenge:
        if self.allow_any_output:
            return self
        if self.expected_output is None:
            raise ValueError(
                f"Challenge '{self.id}' needs expected_output unless allow_any_output is set."
            )
        if isinstance(self.expected_output, list) and not self.expected_output:
            raise ValueError(f"Challenge '{self.id}' has an empty expected_output list.")
        return self

    @property
    def accepts_any_output(self) -> bool:
        """Whether any non-empty output passes."""
        return self.allow_any_output

    @property
    def expected_lines(self) -> list[str]:
        """Ordered output lines the judge compares against."""
        if self.allow_any_output or self.expected_output is None:
            return []
        if isinstance(self.expected_output, str):
            return self.expected_output.splitlines() or [self.expected_output]
        return list(self.expected_output)


class DialogueNode(ContentModel):
    """One step of a scene; its type decides which optional payload is set."""

    id: str = Field(min_length=1, max_length=120)
    type: NodeType = "dialogue"
    speaker: str | None = None
    text: str = Field(min_length=1, max_length=4000)
    character: CharacterDisplay | None = None
    next_scene_id: str | None = None
    choices: list[Choice] | None = None
    code_challenge: CodeChallenge | None = None

    @field_validator("id")
    @classmethod
    def _validate_node_id(cls, value: str) -> str:
        return _validate_id(value, field_name="Dialogue id")

    @model_validator(mode="after")
    def _validate_variant(self) -> DialogueNode:
        if self.type == "choice":
            if not self.choices:
                raise ValueError(f"Choice node '{self.id}' needs at least one choice.")
            repeated = _duplicates(choice.id for choice in self.choices)
            if repeated:
                raise ValueError(f"Choice node '{self.id}' repeats choice ids: {repeated}.")
        elif self.choices is not None:
            raise ValueError(f"Node '{self.id}' of type '{self.type}' cannot carry choices.")
        if self.type == "code_challenge":
            if self.code_challenge is None:
                raise ValueError(f"Code challenge node '{self.id}' needs a code_challenge.")
        elif self.code_challenge is not None:
            raise ValueError(
                f"Node '{self.id}' of type '{self.type}' cannot carry a code_challenge."
            )
        return self

    def scene_targets(self) -> list[str]:
        """Scene ids this node can lead to."""
        targets: list[str] = []
        if self.next_scene_id:
            targets.append(self.next_scene_id)
        for choice in self.choices or []:
            targets.append(choice.next_scene_id)
        return targets

    def find_choice(self, choice_id: str) -> Choice | None:
        for choice in self.choices or []:
            if choice.id == choice_id:
                return choice
        return None


class Scene(ContentModel):
    """An ordered run of dialogue nodes against one background."""

    id: str = Field(min_length=1, max_length=120)
    chapter_id: int = Field(ge=1)
    scene_number: int = Field(ge=1)
    background: str = Field(min_length=1, max_length=120)
    dialogues: list[DialogueNode] = Field(min_length=1)
    is_start_of_chapter: bool = False
    is_end_of_chapter: bool = False

    @field_validator("id")
    @classmethod
    def _validate_scene_id(cls, value: str) -> str:
        return _validate_id(value, field_name="Scene id")


class Chapter(ContentModel):
    """A chapter of the story graph; scene edges never leave the chapter."""

    id: int = Field(ge=1)
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1, max_length=4000)
    learning_concept: str = Field(min_length=1, max_length=300)
    scenes: list[Scene] = Field(min_length=1)

    @model_validator(mode="after")
    def _validate_scene_graph(self) -> Chapter:
        scene_ids = [scene.id for scene in self.scenes]
        repeated = _duplicates(scene_ids)
        if repeated:
            raise ValueError(f"Chapter {self.id} repeats scene ids: {repeated}.")

        foreign = [scene.id for scene in self.scenes if scene.chapter_id != self.id]
        if foreign:
            raise ValueError(f"Chapter {self.id} holds scenes of another chapter: {foreign}.")

        repeated_nodes = _duplicates(
            node.id for scene in self.scenes for node in scene.dialogues
        )
        if repeated_nodes:
            raise ValueError(f"Chapter {self.id} repeats dialogue ids: {repeated_nodes}.")

        known = set(scene_ids)
        for scene in self.scenes:
            for node in scene.dialogues:
                dangling = [target for target in node.scene_targets() if target not in known]
                if dangling:
                    raise ValueError(
                        f"Dialogue '{node.id}' in scene '{scene.id}' targets unknown scenes: {dangling}."
                    )
        return self

    def find_scene(self, scene_id: str) -> Scene | None:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def start_scene(self) -> Scene:
        """First scene flagged as chapter start, else the first scene."""
        for scene in self.scenes:
            if scene.is_start_of_chapter:
                return scene
        return self.scenes[0]

    def challenges(self) -> list[CodeChallenge]:
        return [
            node.code_challenge
            for scene in self.scenes
            for node in scene.dialogues
            if node.code_challenge is not None
        ]

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError

from story_player.core.content_schema import Chapter, CodeChallenge, DialogueNode


def _chapter_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": 1,
        "title": "Hello",
        "description": "First steps",
        "learning_concept": "print()",
        "scenes": [
            {
                "id": "s1",
                "chapter_id": 1,
                "scene_number": 1,
                "background": "forest",
                "is_start_of_chapter": True,
                "dialogues": [
                    {"id": "d1", "text": "Hi", "next_scene_id": "s2"},
                ],
            },
            {
                "id": "s2",
                "chapter_id": 1,
                "scene_number": 2,
                "background": "forest",
                "is_end_of_chapter": True,
                "dialogues": [{"id": "d2", "text": "Bye"}],
            },
        ],
    }
    payload.update(overrides)
    return payload


def test_chapter_accepts_well_formed_scene_graph() -> None:
    chapter = Chapter.model_validate(_chapter_payload())
    assert chapter.start_scene().id == "s1"
    assert chapter.find_scene("s2") is not None
    assert chapter.find_scene("missing") is None


def test_chapter_rejects_dangling_next_scene() -> None:
    payload = _chapter_payload()
    payload["scenes"][0]["dialogues"][0]["next_scene_id"] = "nowhere"
    with pytest.raises(ValidationError, match="unknown scenes"):
        Chapter.model_validate(payload)


def test_chapter_rejects_dangling_choice_target() -> None:
    payload = _chapter_payload()
    payload["scenes"][1]["dialogues"] = [
        {
            "id": "d2",
            "type": "choice",
            "text": "Pick",
            "choices": [{"id": "c1", "text": "Go", "next_scene_id": "ghost"}],
        }
    ]
    with pytest.raises(ValidationError, match="ghost"):
        Chapter.model_validate(payload)


def test_chapter_rejects_duplicate_scene_ids_and_foreign_scenes() -> None:
    duplicated = _chapter_payload()
    duplicated["scenes"][1]["id"] = "s1"
    duplicated["scenes"][0]["dialogues"][0]["next_scene_id"] = None
    with pytest.raises(ValidationError, match="repeats scene ids"):
        Chapter.model_validate(duplicated)

    foreign = _chapter_payload()
    foreign["scenes"][1]["chapter_id"] = 2
    with pytest.raises(ValidationError, match="another chapter"):
        Chapter.model_validate(foreign)


def test_start_scene_falls_back_to_first_scene() -> None:
    payload = _chapter_payload()
    payload["scenes"][0]["is_start_of_chapter"] = False
    chapter = Chapter.model_validate(payload)
    assert chapter.start_scene().id == "s1"


def test_choice_node_requires_choices() -> None:
    with pytest.raises(ValidationError, match="at least one choice"):
        DialogueNode.model_validate({"id": "d1", "type": "choice", "text": "Pick", "choices": []})


def test_dialogue_node_cannot_carry_other_variant_payloads() -> None:
    with pytest.raises(ValidationError, match="cannot carry choices"):
        DialogueNode.model_validate(
            {
                "id": "d1",
                "text": "Hi",
                "choices": [{"id": "c1", "text": "Go", "next_scene_id": "s2"}],
            }
        )
    with pytest.raises(ValidationError, match="needs a code_challenge"):
        DialogueNode.model_validate({"id": "d1", "type": "code_challenge", "text": "Code"})


def test_choice_ids_must_be_unique_within_node() -> None:
    with pytest.raises(ValidationError, match="repeats choice ids"):
        DialogueNode.model_validate(
            {
                "id": "d1",
                "type": "choice",
                "text": "Pick",
                "choices": [
                    {"id": "c1", "text": "A", "next_scene_id": "s1"},
                    {"id": "c1", "text": "B", "next_scene_id": "s2"},
                ],
            }
        )


def test_code_challenge_expected_output_variants() -> None:
    single = CodeChallenge(id="ch1", title="T", description="D", expected_output="Hello World")
    lines = CodeChallenge(
        id="ch2", title="T", description="D", expected_output=["Aku suka", "Belajar", "Python"]
    )
    wildcard = CodeChallenge(
        id="ch3", title="T", description="D", expected_output="", allow_any_output=True
    )

    assert single.expected_lines == ["Hello World"]
    assert single.accepts_any_output is False
    assert lines.expected_lines == ["Aku suka", "Belajar", "Python"]
    assert wildcard.accepts_any_output is True
    assert wildcard.expected_lines == []
    assert single.max_attempts == 3


def test_code_challenge_needs_output_spec_or_wildcard() -> None:
    with pytest.raises(ValidationError, match="needs expected_output"):
        CodeChallenge(id="ch1", title="T", description="D")
    with pytest.raises(ValidationError, match="empty expected_output"):
        CodeChallenge(id="ch1", title="T", description="D", expected_output=[])

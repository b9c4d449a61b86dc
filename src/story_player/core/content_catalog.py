"""Read-only catalog of validated chapters used by the story engine."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from story_player.core.content_schema import Chapter, CodeChallenge, Scene
from story_player.domain.errors import ContentNotFound, ContentValidationError

logger = logging.getLogger(__name__)


class ContentCatalog:
    """Immutable chapter lookup, loaded once before play starts."""

    def __init__(self, chapters: Iterable[Chapter]) -> None:
        by_id: dict[int, Chapter] = {}
        for chapter in chapters:
            if chapter.id in by_id:
                raise ContentValidationError(f"Chapter id {chapter.id} is defined twice.")
            by_id[chapter.id] = chapter
        self._chapters = dict(sorted(by_id.items()))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> ContentCatalog:
        """Validate one chapter mapping or a list of them."""
        items = [payload] if isinstance(payload, Mapping) else list(payload)
        chapters: list[Chapter] = []
        for position, item in enumerate(items, start=1):
            try:
                chapters.append(Chapter.model_validate(item))
            except ValidationError as exc:
                raise ContentValidationError(
                    f"Chapter payload #{position} is invalid: {exc}"
                ) from exc
        return cls(chapters)

    @classmethod
    def from_json_file(cls, path: Path) -> ContentCatalog:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ContentValidationError(f"Cannot read content file {path}: {exc}") from exc
        try:
            catalog = cls.from_payload(payload)
        except ContentValidationError as exc:
            raise ContentValidationError(f"{path}: {exc}") from exc
        logger.info("content.load path=%s chapters=%s", path, len(catalog))
        return catalog

    @classmethod
    def from_directory(cls, root: Path) -> ContentCatalog:
        """Load every `*.json` file under `root` in name order."""
        chapters: list[Chapter] = []
        for path in sorted(root.glob("*.json")):
            chapters.extend(cls.from_json_file(path).chapters())
        return cls(chapters)

    def __len__(self) -> int:
        return len(self._chapters)

    def __contains__(self, chapter_id: object) -> bool:
        return chapter_id in self._chapters

    def chapters(self) -> list[Chapter]:
        return list(self._chapters.values())

    def chapter_ids(self) -> list[int]:
        return list(self._chapters)

    def get_chapter(self, chapter_id: int) -> Chapter | None:
        return self._chapters.get(chapter_id)

    def require_chapter(self, chapter_id: int) -> Chapter:
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            raise ContentNotFound(f"Chapter {chapter_id} not found.")
        return chapter

    def start_scene(self, chapter_id: int) -> Scene:
        return self.require_chapter(chapter_id).start_scene()

    def find_challenge(self, challenge_id: str) -> CodeChallenge | None:
        """Challenge specification handed to the external judge."""
        for chapter in self._chapters.values():
            for challenge in chapter.challenges():
                if challenge.id == challenge_id:
                    return challenge
        return None

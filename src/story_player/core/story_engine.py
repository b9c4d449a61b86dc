"""Story progression state machine over chapter, scene, and dialogue position."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from story_player.core.content_catalog import ContentCatalog
from story_player.core.content_schema import Chapter, DialogueNode, Scene
from story_player.core.profile_schema import StoryState
from story_player.domain.errors import ContentNotFound
from story_player.domain.models import StoryProgressUpdate, Transition

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[StoryProgressUpdate], None]


class StoryEngine:
    """Walks the content catalog and reports every progress change.

    The engine keeps a private `StoryState`. It never writes to a profile;
    each mutation is reported through `on_progress` so the owner of the
    profile can merge it and schedule persistence.
    """

    def __init__(
        self,
        catalog: ContentCatalog,
        *,
        on_progress: ProgressCallback | None = None,
        state: StoryState | None = None,
    ) -> None:
        self._catalog = catalog
        self._on_progress = on_progress
        self._state = state.model_copy(deep=True) if state is not None else StoryState()
        self._scene: Scene | None = None
        self._dialogue: DialogueNode | None = None

    # ---------- Read-only views ----------
    @property
    def state(self) -> StoryState:
        """Copy of the current story state."""
        return self._state.model_copy(deep=True)

    @property
    def current_scene(self) -> Scene | None:
        return self._scene

    @property
    def current_dialogue(self) -> DialogueNode | None:
        return self._dialogue

    @property
    def active_chapter(self) -> Chapter | None:
        return self._catalog.get_chapter(self._state.current_chapter)

    @property
    def is_chapter_complete(self) -> bool:
        return self._state.current_chapter in self._state.completed_chapters

    # ---------- Navigation ----------
    def load_chapter(self, chapter_id: int) -> Chapter:
        """Enter a chapter at its start scene, forgetting per-chapter choices."""
        chapter = self._catalog.get_chapter(chapter_id)
        if chapter is None:
            raise ContentNotFound(f"Chapter {chapter_id} not found.")
        self._state.current_chapter = chapter_id
        self._state.current_scene = ""
        self._state.current_dialogue_index = 0
        self._state.choices = {}
        self._scene = None
        self._dialogue = None
        self._emit(
            StoryProgressUpdate(
                current_chapter=chapter_id,
                current_scene="",
                current_dialogue_index=0,
                choices={},
            )
        )
        self.load_scene(chapter.start_scene().id, chapter.scenes)
        logger.debug("story.chapter.loaded chapter=%s", chapter_id)
        return chapter

    def load_scene(self, scene_id: str, scenes: Sequence[Scene] | None = None) -> Scene:
        """Make `scene_id` current and show its first dialogue node."""
        if scenes is None:
            scenes = self._require_active_chapter().scenes
        scene = next((candidate for candidate in scenes if candidate.id == scene_id), None)
        if scene is None:
            raise ContentNotFound(
                f"Scene '{scene_id}' not found in chapter {self._state.current_chapter}."
            )
        if scene.chapter_id != self._state.current_chapter:
            raise ContentNotFound(
                f"Scene '{scene_id}' belongs to chapter {scene.chapter_id}, "
                f"not chapter {self._state.current_chapter}."
            )
        self._scene = scene
        self._state.current_scene = scene.id
        self._state.current_dialogue_index = 0
        self._dialogue = scene.dialogues[0]
        self._emit(StoryProgressUpdate(current_scene=scene.id, current_dialogue_index=0))
        return scene

    def load_dialogue(self, index: int) -> DialogueNode:
        scene = self._require_scene()
        if not 0 <= index < len(scene.dialogues):
            raise ContentNotFound(
                f"Dialogue index {index} is outside scene '{scene.id}' "
                f"({len(scene.dialogues)} nodes)."
            )
        self._state.current_dialogue_index = index
        self._dialogue = scene.dialogues[index]
        self._emit(StoryProgressUpdate(current_dialogue_index=index))
        return self._dialogue

    def next_dialogue(self) -> Transition:
        """Advance one step; node transitions win over chapter completion."""
        scene = self._require_scene()
        next_index = self._state.current_dialogue_index + 1
        if next_index < len(scene.dialogues):
            self.load_dialogue(next_index)
            return Transition.ADVANCED

        node = self._dialogue
        if node is not None and node.next_scene_id:
            self.load_scene(node.next_scene_id)
            return Transition.SCENE_CHANGED

        if scene.is_end_of_chapter:
            self.complete_chapter()
            return Transition.CHAPTER_COMPLETED

        return Transition.TERMINAL

    def choose(self, choice_id: str) -> Scene:
        """Record a choice on the current choice node and follow its edge."""
        scene = self._require_scene()
        node = self._dialogue
        if node is None or node.type != "choice":
            raise ContentNotFound(f"No choice node is active in scene '{scene.id}'.")
        choice = node.find_choice(choice_id)
        if choice is None:
            raise ContentNotFound(f"Choice '{choice_id}' not offered by node '{node.id}'.")
        self.record_choice(scene.id, choice.id)
        return self.load_scene(choice.next_scene_id)

    # ---------- Bookkeeping ----------
    def complete_chapter(self) -> bool:
        """Mark the current chapter complete; return False if it already was."""
        chapter_id = self._state.current_chapter
        if chapter_id in self._state.completed_chapters:
            return False
        self._state.completed_chapters = [*self._state.completed_chapters, chapter_id]
        self._emit(StoryProgressUpdate(completed_chapters=self._state.completed_chapters))
        logger.info("story.chapter.completed chapter=%s", chapter_id)
        return True

    def record_choice(self, scene_id: str, choice_id: str) -> None:
        self._state.choices = {**self._state.choices, scene_id: choice_id}
        self._emit(StoryProgressUpdate(choices=self._state.choices))

    def record_code_submission(self, challenge_id: str, code: str) -> None:
        self._state.code_submissions = {**self._state.code_submissions, challenge_id: code}
        self._emit(StoryProgressUpdate(code_submissions=self._state.code_submissions))

    def reset_story(self) -> None:
        self._state = StoryState()
        self._scene = None
        self._dialogue = None
        fresh = self._state
        self._emit(
            StoryProgressUpdate(
                current_chapter=fresh.current_chapter,
                current_scene=fresh.current_scene,
                current_dialogue_index=fresh.current_dialogue_index,
                completed_chapters=fresh.completed_chapters,
                choices=fresh.choices,
                code_submissions=fresh.code_submissions,
            )
        )

    def resume(self, state: StoryState) -> None:
        """Adopt saved progress and re-derive the scene and dialogue pointers.

        Raises `ContentNotFound` when the saved position no longer exists;
        the engine is left untouched in that case.
        """
        adopted = state.model_copy(deep=True)
        scene: Scene | None = None
        dialogue: DialogueNode | None = None
        if adopted.is_positioned:
            chapter = self._catalog.get_chapter(adopted.current_chapter)
            if chapter is None:
                raise ContentNotFound(f"Chapter {adopted.current_chapter} not found.")
            scene = chapter.find_scene(adopted.current_scene)
            if scene is None:
                raise ContentNotFound(
                    f"Scene '{adopted.current_scene}' not found in chapter {chapter.id}."
                )
            index = adopted.current_dialogue_index
            if not 0 <= index < len(scene.dialogues):
                raise ContentNotFound(
                    f"Dialogue index {index} is outside scene '{scene.id}'."
                )
            dialogue = scene.dialogues[index]
        self._state = adopted
        self._scene = scene
        self._dialogue = dialogue

    # ---------- Helpers ----------
    def _require_scene(self) -> Scene:
        if self._scene is None:
            raise ContentNotFound("No scene is loaded.")
        return self._scene

    def _require_active_chapter(self) -> Chapter:
        chapter = self.active_chapter
        if chapter is None:
            raise ContentNotFound(f"Chapter {self._state.current_chapter} not found.")
        return chapter

    def _emit(self, update: StoryProgressUpdate) -> None:
        if self._on_progress is not None:
            self._on_progress(update)

"""CLI entry point for story_player content and profile maintenance."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from story_player.adapters.observability import configure_runtime_logging
from story_player.adapters.profile_store_factory import create_profile_store
from story_player.core.content_catalog import ContentCatalog
from story_player.core.runtime_settings import load_runtime_settings
from story_player.domain.errors import ContentValidationError, StorageError, StorageUnavailable


def build_arg_parser() -> argparse.ArgumentParser:
    """Define subcommands for content validation and profile listing."""
    parser = argparse.ArgumentParser(
        prog="story-player", description="Validate story content and inspect saved profiles."
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    validate = subcommands.add_parser("validate", help="Validate chapter JSON files.")
    validate.add_argument("paths", nargs="+", help="Chapter JSON files or directories.")

    outline = subcommands.add_parser("outline", help="Print chapters, scenes, and edges.")
    outline.add_argument("path", help="Chapter JSON file or directory.")

    profiles = subcommands.add_parser("profiles", help="List saved profiles.")
    profiles.add_argument("--db-path", default=None, help="Overrides STORY_PLAYER_DB_PATH.")
    return parser


def _load_catalog(path: Path) -> ContentCatalog:
    if path.is_dir():
        return ContentCatalog.from_directory(path)
    return ContentCatalog.from_json_file(path)


def _run_validate(paths: list[str]) -> int:
    failures = 0
    for raw in paths:
        path = Path(raw)
        try:
            catalog = _load_catalog(path)
        except ContentValidationError as exc:
            failures += 1
            print(f"[invalid] {path}: {exc}")
            continue
        scenes = sum(len(chapter.scenes) for chapter in catalog.chapters())
        print(f"[ok] {path}: {len(catalog)} chapter(s), {scenes} scene(s)")
    return 1 if failures else 0


def _run_outline(raw_path: str) -> int:
    try:
        catalog = _load_catalog(Path(raw_path))
    except ContentValidationError as exc:
        print(f"[invalid] {raw_path}: {exc}")
        return 1
    for chapter in catalog.chapters():
        print(f"Chapter {chapter.id}: {chapter.title} ({chapter.learning_concept})")
        for scene in chapter.scenes:
            flags = [
                label
                for label, enabled in (
                    ("start", scene.is_start_of_chapter),
                    ("end", scene.is_end_of_chapter),
                )
                if enabled
            ]
            suffix = f" [{', '.join(flags)}]" if flags else ""
            print(f"  {scene.id} #{scene.scene_number} ({len(scene.dialogues)} nodes){suffix}")
            for node in scene.dialogues:
                for choice in node.choices or []:
                    print(f"    {node.id} --{choice.id}--> {choice.next_scene_id}")
                if node.next_scene_id:
                    print(f"    {node.id} --> {node.next_scene_id}")
    return 0


async def _list_profiles(db_path: Path, backend: str) -> int:
    store = create_profile_store(db_path=db_path, backend=backend)
    try:
        await store.init()
    except StorageUnavailable as exc:
        print(f"Profile storage unavailable: {exc}")
        return 1
    try:
        profiles = await store.list_all()
    except StorageError as exc:
        print(f"Failed to list profiles: {exc}")
        return 1
    finally:
        await store.close()
    if not profiles:
        print("No profiles saved.")
        return 0
    for profile in profiles:
        completed = ", ".join(str(item) for item in profile.story.completed_chapters) or "-"
        print(
            f"{profile.id}  {profile.name} (age {profile.age})  "
            f"last played {profile.last_played_at_utc}  completed: {completed}"
        )
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = build_arg_parser()
    parsed = parser.parse_args(argv)
    configure_runtime_logging()

    if parsed.command == "validate":
        code = _run_validate(list(parsed.paths))
    elif parsed.command == "outline":
        code = _run_outline(str(parsed.path))
    else:
        settings = load_runtime_settings()
        db_path = Path(parsed.db_path) if parsed.db_path else settings.db_path
        code = asyncio.run(_list_profiles(db_path, settings.profile_backend))
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

ROOT = Path(__file__).resolve().parents[1]


def _load_checker_module() -> ModuleType:
    module_path = ROOT / "tools" / "check_imports.py"
    spec = importlib.util.spec_from_file_location("check_imports_tool", module_path)
    assert spec is not None
    loader = spec.loader
    assert loader is not None
    module = importlib.util.module_from_spec(spec)
    loader.exec_module(module)
    return module


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_repository_respects_layer_boundaries() -> None:
    checker = _load_checker_module()
    assert checker.check_import_boundaries() == []


def test_core_may_import_domain_and_core(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_player"
    engine = _write(
        source_root / "core" / "engine.py",
        "from story_player.domain.errors import ContentNotFound\n"
        "from . import content_schema\n"
        "from .content_catalog import ContentCatalog\n",
    )
    assert checker.check_file(engine, source_root) == []


def test_core_importing_adapters_is_rejected(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_player"
    engine = _write(
        source_root / "core" / "engine.py",
        "import story_player.adapters.sqlite_profile_store\n"
        "from ..application import session\n",
    )
    violations = checker.check_file(engine, source_root)
    assert len(violations) == 2
    assert violations[0].endswith(":1: core must not import story_player.adapters")
    assert violations[1].endswith(":2: core must not import story_player.application")


def test_domain_allows_type_checking_imports_only(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_player"
    models = _write(
        source_root / "domain" / "models.py",
        "from typing import TYPE_CHECKING\n"
        "if TYPE_CHECKING:\n"
        "    from story_player.core.profile_schema import StoryState\n"
        "from story_player import core\n",
    )
    violations = checker.check_file(models, source_root)
    assert len(violations) == 1
    assert ":4: domain must not import story_player.core" in violations[0]


def test_unlisted_layers_are_not_checked(tmp_path: Path) -> None:
    checker = _load_checker_module()
    source_root = tmp_path / "src" / "story_player"
    cli = _write(source_root / "cli.py", "from story_player.adapters import observability\n")
    assert checker.layer_of(cli, source_root) == "cli"
    assert checker.check_file(cli, source_root) == []

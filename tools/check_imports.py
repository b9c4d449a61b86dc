"""Validate layer import boundaries inside the story_player package."""

from __future__ import annotations

import ast
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PACKAGE = "story_player"
DEFAULT_SOURCE_ROOT = PROJECT_ROOT / "src" / PACKAGE
LAYERS = ("domain", "core", "adapters", "application", "cli")
FORBIDDEN: dict[str, frozenset[str]] = {
    "domain": frozenset({"core", "adapters", "application", "cli"}),
    "core": frozenset({"adapters", "application", "cli"}),
}


def layer_of(path: Path, source_root: Path) -> str | None:
    """Layer owning `path`; `cli.py` at the package root is the cli layer."""
    try:
        relative = path.relative_to(source_root)
    except ValueError:
        return None
    head = relative.parts[0] if relative.parts else ""
    name = head[:-3] if head.endswith(".py") else head
    return name if name in LAYERS else None


def _module_layer(dotted: str) -> str | None:
    parts = dotted.split(".")
    if len(parts) < 2 or parts[0] != PACKAGE:
        return None
    return parts[1] if parts[1] in LAYERS else None


def _package_of(path: Path, source_root: Path) -> list[str]:
    relative = path.relative_to(source_root).with_suffix("")
    return [PACKAGE, *relative.parts][:-1]


def _targets(node: ast.Import | ast.ImportFrom, path: Path, source_root: Path) -> set[str]:
    if isinstance(node, ast.Import):
        return {layer for alias in node.names if (layer := _module_layer(alias.name))}

    if node.level:
        package = _package_of(path, source_root)
        keep = len(package) - (node.level - 1)
        if keep <= 0:
            return set()
        base = package[:keep]
        dotted = ".".join([*base, node.module] if node.module else base)
    else:
        dotted = node.module or ""

    layer = _module_layer(dotted)
    if layer is not None:
        return {layer}
    if dotted == PACKAGE:
        return {alias.name for alias in node.names if alias.name in LAYERS}
    return set()


def _is_type_checking_guard(node: ast.If) -> bool:
    test = node.test
    if isinstance(test, ast.Name):
        return test.id == "TYPE_CHECKING"
    return isinstance(test, ast.Attribute) and test.attr == "TYPE_CHECKING"


def _runtime_imports(tree: ast.AST) -> list[ast.Import | ast.ImportFrom]:
    """Import statements outside `if TYPE_CHECKING:` blocks."""
    found: list[ast.Import | ast.ImportFrom] = []
    pending: list[ast.AST] = [tree]
    while pending:
        node = pending.pop()
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            found.append(node)
            continue
        if isinstance(node, ast.If) and _is_type_checking_guard(node):
            pending.extend(node.orelse)
            continue
        pending.extend(ast.iter_child_nodes(node))
    return sorted(found, key=lambda item: item.lineno)


def check_file(path: Path, source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    layer = layer_of(path, source_root)
    forbidden = FORBIDDEN.get(layer or "", frozenset())
    if not forbidden:
        return []

    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    violations: list[str] = []
    for node in _runtime_imports(tree):
        for target in sorted(_targets(node, path, source_root) & forbidden):
            violations.append(
                f"{path}:{node.lineno}: {layer} must not import {PACKAGE}.{target}"
            )
    return violations


def check_import_boundaries(source_root: Path = DEFAULT_SOURCE_ROOT) -> list[str]:
    violations: list[str] = []
    for path in sorted(source_root.rglob("*.py")):
        violations.extend(check_file(path, source_root))
    return violations


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    source_root = Path(args[0]) if args else DEFAULT_SOURCE_ROOT
    violations = check_import_boundaries(source_root)
    for violation in violations:
        print(violation)
    if violations:
        return 1
    print("import boundaries ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

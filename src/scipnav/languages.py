"""Languages with a supported SCIP indexer, and project language detection."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("scipnav.languages")

# Directories never walked when probing for source files
DEFAULT_IGNORE = frozenset({
    ".git", ".scip", "node_modules", ".venv", ".poetry", "dist", "build", "out",
})


@dataclass
class LanguageConfig:
    """A language and the external indexer that produces its SCIP index."""
    name: str
    extensions: tuple[str, ...]
    indexer: str  # shell command, run from the project root
    markers: tuple[str, ...]  # files whose presence identifies a project
    fallback_extensions: tuple[str, ...] = ()  # any such file also identifies one


LANGUAGES: dict[str, LanguageConfig] = {
    "python": LanguageConfig(
        name="python",
        extensions=(".py",),
        indexer="scip-python index . --output .scip/index.scip",
        markers=("pyproject.toml", "setup.py", "requirements.txt"),
        fallback_extensions=(".py",),
    ),
    "typescript": LanguageConfig(
        name="typescript",
        extensions=(".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs", ".vue"),
        indexer="scip-typescript index --output .scip/index.scip",
        markers=("tsconfig.json", "jsconfig.json"),
        fallback_extensions=(".ts", ".tsx"),
    ),
}

_EXT_TO_LANG: dict[str, str] = {}
for lang_name, config in LANGUAGES.items():
    for ext in config.extensions:
        _EXT_TO_LANG.setdefault(ext, lang_name)

SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(_EXT_TO_LANG)


def detect_language(path: str | Path) -> str | None:
    """Detect language from file extension."""
    return _EXT_TO_LANG.get(Path(path).suffix.lower())


def _package_json_is_typescript(root: Path) -> bool:
    try:
        pkg = json.loads((root / "package.json").read_text())
    except (OSError, ValueError):
        return False
    if not isinstance(pkg, dict):
        return False

    deps = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}
    if "typescript" in deps:
        return True
    main = pkg.get("main")
    return isinstance(main, str) and main.endswith((".js", ".ts", ".mjs", ".cjs"))


def _has_files(root: Path, extensions: tuple[str, ...]) -> bool:
    """Depth-first walk for any file with one of the given extensions."""
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            entries = list(current.iterdir())
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith(".") or entry.name in DEFAULT_IGNORE:
                continue
            if entry.is_dir():
                stack.append(entry)
            elif entry.is_file() and entry.name.endswith(extensions):
                return True
    return False


def _is_project(root: Path, config: LanguageConfig) -> bool:
    if any((root / marker).exists() for marker in config.markers):
        return True
    if config.name == "typescript" and _package_json_is_typescript(root):
        return True
    return bool(config.fallback_extensions) and _has_files(root, config.fallback_extensions)


def detect_languages(root: str | Path) -> list[LanguageConfig]:
    """Languages present in a project, in registry order."""
    root = Path(root)
    found = [config for config in LANGUAGES.values() if _is_project(root, config)]
    logger.debug("Detected languages in %s: %s", root, [c.name for c in found])
    return found


def indexer_commands(root: str | Path) -> list[str]:
    """Commands that (re)generate the SCIP index for a project.

    Falls back to every known indexer when no language is detected.
    """
    configs = detect_languages(root) or list(LANGUAGES.values())
    return [config.indexer for config in configs]


def reindex_hint(root: str | Path) -> str:
    """One-line instruction for regenerating the index."""
    commands = indexer_commands(root)
    if len(commands) == 1:
        return f"Run from {root}: {commands[0]}"
    # Every indexer writes .scip/index.scip, so a later run replaces an earlier one
    return (
        f"Run ONE of these from {root} (each writes .scip/index.scip and replaces "
        f"any previous index): " + " | ".join(commands)
    )


def _newest_mtime(root: Path, extensions: tuple[str, ...]) -> float | None:
    """Latest modification time of any matching source file, skipping ignored dirs."""
    newest: float | None = None
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            entries = list(current.iterdir())
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith(".") or entry.name in DEFAULT_IGNORE:
                continue
            try:
                if entry.is_dir():
                    stack.append(entry)
                elif entry.is_file() and entry.name.endswith(extensions):
                    mtime = entry.stat().st_mtime
                    if newest is None or mtime > newest:
                        newest = mtime
            except OSError:
                continue
    return newest


def needs_reindex(root: str | Path, index_path: str | Path) -> bool:
    """True if the index is missing or any source file is newer than it.

    Only sources of the detected languages are compared (all supported
    extensions when none is detected). A project with no sources never
    needs a reindex once an index file exists.
    """
    root = Path(root)
    try:
        index_mtime = Path(index_path).stat().st_mtime
    except OSError:
        return True

    configs = detect_languages(root)
    extensions = tuple(e for c in configs for e in c.extensions) or SUPPORTED_EXTENSIONS
    newest = _newest_mtime(root, extensions)
    stale = newest is not None and newest > index_mtime
    if stale:
        logger.debug("SCIP index %s is older than sources under %s", index_path, root)
    return stale

"""File discovery — walk a workspace, respect .gitignore, return (path, language) pairs."""

import logging
from pathlib import Path

import pathspec

from .models import IndexConfig

log = logging.getLogger(__name__)

_EXT_TO_LANG: dict[str, str] = {
    ".java": "java",
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescriptreact",
}


def language_for_path(path: str | Path) -> str | None:
    """Language id for a file, decided by its extension alone."""
    return _EXT_TO_LANG.get(Path(path).suffix.lower())


def _compile_patterns(lines: list[str], origin: str) -> pathspec.PathSpec:
    """Compile gitwildmatch patterns, dropping the ones pathspec rejects."""
    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)
    except ValueError:
        pass
    good: list[str] = []
    for line in lines:
        try:
            pathspec.PathSpec.from_lines("gitwildmatch", [line])
        except ValueError as e:
            log.warning("Ignoring invalid pattern %r in %s: %s", line, origin, e)
            continue
        good.append(line)
    return pathspec.PathSpec.from_lines("gitwildmatch", good)


def _load_gitignore_spec(root: Path) -> pathspec.PathSpec | None:
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return None
    try:
        patterns = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as e:
        log.warning("Cannot read %s: %s", gitignore, e)
        return None
    return _compile_patterns(patterns, str(gitignore))


def discover_files(config: IndexConfig) -> list[tuple[str, str]]:
    """
    Return (absolute_path, language) for all indexable source files
    under config.project_root, in sorted path order.

    Skips config.exclude patterns, .gitignore'd paths (unless
    respect_gitignore is off), languages not in config.languages and files
    larger than config.max_file_bytes.
    """
    root = Path(config.project_root).resolve()
    if not root.is_dir():
        log.warning("Workspace root is not a directory: %s", root)
        return []

    exclude_spec = _compile_patterns(list(config.exclude), "exclude patterns")
    gitignore_spec = _load_gitignore_spec(root) if config.respect_gitignore else None
    wanted_langs = set(config.languages)

    results: list[tuple[str, str]] = []

    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue

        rel_str = path.relative_to(root).as_posix()

        if exclude_spec.match_file(rel_str):
            continue
        if gitignore_spec and gitignore_spec.match_file(rel_str):
            continue

        lang = language_for_path(path)
        if lang is None or lang not in wanted_langs:
            continue

        try:
            size = path.stat().st_size
        except OSError as e:
            log.warning("Cannot stat %s: %s", path, e)
            continue
        if size > config.max_file_bytes:
            log.info("Skipping %s (%d bytes > %d)", rel_str, size, config.max_file_bytes)
            continue

        results.append((str(path), lang))

    log.info("Discovered %d files under %s", len(results), root)
    return results

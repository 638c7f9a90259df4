from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pathspec


def _read_ignore_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []


def _prefix_pattern(prefix: str, pattern: str) -> str:
    if not pattern or pattern.startswith("#"):
        return pattern

    negate = pattern.startswith("!")
    core = pattern[1:] if negate else pattern

    if core.startswith("/"):
        mapped = f"{prefix}{core}" if prefix else core
    elif "/" in core.rstrip("/"):
        mapped = f"{prefix}/{core}" if prefix else core
    else:
        mapped = f"{prefix}/**/{core}" if prefix else core

    return f"!{mapped}" if negate else mapped


def _collect_gitignore_patterns(source_root: Path) -> list[str]:
    patterns: list[str] = []
    for gitignore in sorted(source_root.rglob(".gitignore")):
        if ".git" in gitignore.parts:
            continue
        rel_parent = gitignore.parent.relative_to(source_root).as_posix()
        rel_prefix = "" if rel_parent == "." else rel_parent
        for line in _read_ignore_lines(gitignore):
            if not line.strip():
                continue
            patterns.append(_prefix_pattern(rel_prefix, line))
    return patterns


class IgnoreEngine:
    """Matches tree-relative paths against gitignore-style patterns."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = list(patterns)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    def is_ignored(self, relative_path: Path, is_dir: bool = False) -> bool:
        unix_path = relative_path.as_posix()
        candidate = f"{unix_path}/" if is_dir and not unix_path.endswith("/") else unix_path
        return self._spec.match_file(candidate)


def build_ignore_engine(source_root: Path, excludes: Iterable[str], use_gitignore: bool = False) -> IgnoreEngine:
    patterns = [pattern for pattern in excludes if pattern.strip()]
    if use_gitignore:
        patterns.extend(_collect_gitignore_patterns(source_root))
        patterns.append(".git/")
    return IgnoreEngine(patterns)

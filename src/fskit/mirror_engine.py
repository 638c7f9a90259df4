from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from fskit.errors import IOFailure, NotFound, from_os_error
from fskit.ignore_engine import IgnoreEngine, build_ignore_engine
from fskit.models import CopyDecision, MirrorOptions, MirrorStats

if TYPE_CHECKING:
    from fskit.filesystem import Filesystem


log = logging.getLogger("fskit.mirror")


def needs_copy(source: Path, target: Path, force: bool = False) -> bool:
    if force or not target.is_file():
        return True
    return source.stat().st_mtime_ns > target.stat().st_mtime_ns


_EXPECTED_KIND = {"mkdir": "directory", "copy": "file", "link": "link"}


def _entry_kind(path: Path) -> str | None:
    if path.is_symlink():
        return "link"
    if path.is_dir():
        return "directory"
    if os.path.lexists(path):
        return "file"
    return None


def _raise(exc: OSError) -> NoReturn:
    raise exc


def _validate_paths(source_root: Path, target_root: Path) -> None:
    source_resolved = source_root.resolve()
    target_resolved = target_root.resolve()

    if source_resolved == target_resolved:
        raise IOFailure(
            f"Invalid mirror: source and target are equal: {source_root}",
            paths=[source_root, target_root],
        )

    if source_resolved in target_resolved.parents:
        raise IOFailure(
            f"Invalid mirror: target is inside source, which can recurse: {target_root}",
            paths=[source_root, target_root],
        )


def build_mirror_plan(
    source_root: Path,
    target_root: Path,
    options: MirrorOptions,
    ignore_engine: IgnoreEngine | None = None,
) -> tuple[list[CopyDecision], int]:
    if ignore_engine is None:
        ignore_engine = build_ignore_engine(source_root, options.excludes, options.use_gitignore)

    plan: list[CopyDecision] = []
    excluded = 0

    for root_str, dirs, files in os.walk(
        source_root, topdown=True, onerror=_raise, followlinks=options.follow_symlinks
    ):
        root = Path(root_str)
        root_rel = root.relative_to(source_root)
        dirs.sort()
        files.sort()

        kept_dirs: list[str] = []
        for dir_name in dirs:
            rel_path = root_rel / dir_name
            if ignore_engine.is_ignored(rel_path, is_dir=True):
                excluded += 1
                continue
            source_dir = root / dir_name
            if source_dir.is_symlink() and not options.follow_symlinks:
                plan.append(CopyDecision(source_dir, target_root / rel_path, rel_path, "link"))
                continue
            plan.append(CopyDecision(source_dir, target_root / rel_path, rel_path, "mkdir"))
            kept_dirs.append(dir_name)
        dirs[:] = kept_dirs

        for file_name in files:
            rel_path = root_rel / file_name
            if ignore_engine.is_ignored(rel_path):
                excluded += 1
                continue
            source_file = root / file_name
            action = "link" if source_file.is_symlink() and not options.follow_symlinks else "copy"
            plan.append(CopyDecision(source_file, target_root / rel_path, rel_path, action))

    return plan, excluded


def find_extraneous(target_root: Path, expected: set[Path]) -> list[Path]:
    # Outermost entries only; removing a directory takes its contents with it.
    extraneous: list[Path] = []
    for root_str, dirs, files in os.walk(target_root, topdown=True, onerror=_raise):
        root = Path(root_str)
        root_rel = root.relative_to(target_root)
        dirs.sort()
        files.sort()

        kept_dirs: list[str] = []
        for dir_name in dirs:
            if root_rel / dir_name in expected:
                kept_dirs.append(dir_name)
            else:
                extraneous.append(root / dir_name)
        dirs[:] = kept_dirs

        extraneous.extend(root / name for name in files if root_rel / name not in expected)
    return extraneous


def _clear_mismatched(
    fs: Filesystem, decision: CopyDecision, options: MirrorOptions, stats: MirrorStats
) -> bool:
    expected = _EXPECTED_KIND[decision.action]
    found = _entry_kind(decision.destination)
    if found is None or found == expected:
        return False
    # copy() writes through a link to a regular file.
    if expected == "file" and decision.destination.is_file():
        return False

    if not (options.delete or options.override):
        # symlink() copies over ordinary entries itself when links are unsupported.
        if decision.action == "link" and options.copy_on_unsupported_links:
            return False
        raise IOFailure(
            f"Cannot mirror {decision.source} to {decision.destination}: "
            f"target is a {found}, expected a {expected}",
            paths=[decision.source, decision.destination],
        )

    log.debug("Replacing %s %s with a %s", found, decision.destination, expected)
    if not options.dry_run:
        fs.remove(decision.destination)
    stats.deleted += 1
    return True


def _apply(
    fs: Filesystem, decision: CopyDecision, options: MirrorOptions, stats: MirrorStats, cleared: bool
) -> None:
    destination = decision.destination

    if decision.action == "mkdir":
        if not cleared and destination.is_dir():
            return
        if not options.dry_run:
            fs.mkdir(destination).raise_for_failures()
        stats.created_dirs += 1
        return

    if decision.action == "link":
        link_text = os.readlink(decision.source)
        if not options.dry_run:
            fs.symlink(link_text, destination, copy_on_unsupported=options.copy_on_unsupported_links)
        stats.linked += 1
        return

    if options.dry_run:
        written = cleared or needs_copy(decision.source, destination, force=options.override)
    else:
        written = fs.copy(decision.source, destination, force=options.override)
    if written:
        stats.copied += 1
    else:
        stats.skipped += 1


def mirror_tree(fs: Filesystem, source_root: Path, target_root: Path, options: MirrorOptions) -> MirrorStats:
    if not source_root.is_dir():
        raise NotFound(
            f"Source directory does not exist or is not a directory: {source_root}",
            paths=source_root,
        )

    _validate_paths(source_root, target_root)

    try:
        plan, excluded = build_mirror_plan(source_root, target_root, options)
    except OSError as exc:
        raise from_os_error(exc, exc.filename or source_root, "read") from exc

    stats = MirrorStats(excluded=excluded)

    if not options.dry_run:
        fs.mkdir(target_root).raise_for_failures()

    replaced: set[Path] = set()
    for decision in plan:
        try:
            cleared = _clear_mismatched(fs, decision, options, stats)
            if cleared:
                replaced.add(decision.relative)
            _apply(fs, decision, options, stats, cleared)
        except OSError as exc:
            raise from_os_error(exc, decision.source, "mirror", target=decision.destination) from exc

    if options.delete and target_root.is_dir():
        expected = {decision.relative for decision in plan}
        try:
            extraneous = find_extraneous(target_root, expected)
        except OSError as exc:
            raise from_os_error(exc, exc.filename or target_root, "read") from exc
        # Contents of a replaced entry went with it.
        extraneous = [
            path for path in extraneous if not replaced.intersection(path.relative_to(target_root).parents)
        ]
        if not options.dry_run:
            fs.remove(extraneous)
        stats.deleted += len(extraneous)

    log.debug(
        "Mirrored %s -> %s | created_dirs=%s copied=%s linked=%s skipped=%s excluded=%s deleted=%s",
        source_root,
        target_root,
        stats.created_dirs,
        stats.copied,
        stats.linked,
        stats.skipped,
        stats.excluded,
        stats.deleted,
    )
    return stats

from __future__ import annotations

from datetime import datetime
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Callable, Iterator, Union

from fskit.errors import (
    AlreadyExists,
    NotFound,
    UnsupportedOperation,
    from_os_error,
)
from fskit.mirror_engine import mirror_tree, needs_copy
from fskit.models import BatchResult, MirrorOptions, MirrorStats
from fskit.paths import PathInput, PathsInput, as_path_list, is_absolute_path, make_path_relative


Timestamp = Union[float, int, datetime]

# Raised by os.symlink on Windows when the process lacks SeCreateSymbolicLinkPrivilege.
_WINERROR_PRIVILEGE_NOT_HELD = 1314


def walk_post_order(
    root: Path,
    onerror: Callable[[OSError], None] | None = None,
) -> Iterator[Path]:
    """Yield every entry under ``root``, children before parents, ``root`` last.

    Links are leaves. With ``onerror``, an unreadable directory is reported
    and still yielded, and the walk carries on with its siblings.
    """
    stack: list[tuple[Path, bool]] = [(root, False)]
    while stack:
        path, expanded = stack.pop()
        if expanded:
            yield path
            continue

        try:
            with os.scandir(path) as entries:
                children = sorted(entries, key=lambda entry: entry.name)
        except FileNotFoundError:
            continue
        except OSError as exc:
            if onerror is None:
                raise
            onerror(exc)
            yield path
            continue

        stack.append((path, True))
        for entry in reversed(children):
            is_directory = entry.is_dir(follow_symlinks=False)
            stack.append((Path(entry.path), not is_directory))


def _safe_copy(source_file: Path, destination_file: Path) -> None:
    if destination_file.is_symlink():
        # Write through the link; replacing it would turn it into a regular file.
        shutil.copyfile(source_file, destination_file)
        shutil.copystat(source_file, destination_file)
        return

    with tempfile.NamedTemporaryFile(
        delete=False,
        dir=str(destination_file.parent),
        prefix=f".{destination_file.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copy2(source_file, tmp_path)
        tmp_path.replace(destination_file)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _as_epoch(value: Timestamp) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


class Filesystem:
    """Defensive wrappers around per-platform filesystem operations.

    Operations documented as taking ``files`` accept one path or any iterable
    of paths. ``mkdir`` and ``chmod`` attempt every path and report the outcome
    as a :class:`~fskit.models.BatchResult`; every other operation raises a
    :class:`~fskit.errors.FilesystemError` on the first failure.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("fskit.filesystem")

    def copy(self, source: PathInput, target: PathInput, force: bool = False) -> bool:
        """Copy ``source`` to ``target`` unless ``target`` is already up to date.

        An existing target is only overwritten when ``force`` is set or the
        source modification time is strictly newer. The new content replaces
        the target's inode, so hard links to the old target keep the old
        content; a target that is a symbolic link is written through.
        Returns True when the target was written.
        """
        source_file = Path(source)
        target_file = Path(target)

        if not source_file.exists():
            raise NotFound(f"Failed to copy {source_file}: source file does not exist", paths=source_file)
        if not source_file.is_file():
            raise NotFound(f"Failed to copy {source_file}: source is not a regular file", paths=source_file)

        try:
            if not needs_copy(source_file, target_file, force=force):
                self.logger.debug("Skipped %s; %s is up to date", source_file, target_file)
                return False
            target_file.parent.mkdir(parents=True, exist_ok=True)
            _safe_copy(source_file, target_file)
        except OSError as exc:
            raise from_os_error(exc, source_file, "copy", target=target_file) from exc

        self.logger.debug("Copied %s -> %s", source_file, target_file)
        return True

    def mkdir(self, files: PathsInput, mode: int = 0o777) -> BatchResult:
        result = BatchResult()
        for path in as_path_list(files):
            if path.is_dir():
                result.succeeded.append(path)
                continue
            try:
                os.makedirs(path, mode, exist_ok=True)
            except OSError as exc:
                error = from_os_error(exc, path, "create directory")
                self.logger.warning("%s", error)
                result.failures.append(error)
                continue
            self.logger.debug("Created directory %s", path)
            result.succeeded.append(path)
        return result

    def touch(
        self,
        files: PathsInput,
        time: Timestamp | None = None,
        atime: Timestamp | None = None,
    ) -> None:
        """Create missing files; ``time`` defaults to now, ``atime`` to ``time``."""
        times: tuple[float, float] | None = None
        if time is not None or atime is not None:
            mtime = _as_epoch(time) if time is not None else datetime.now().timestamp()
            times = (_as_epoch(atime) if atime is not None else mtime, mtime)

        for path in as_path_list(files):
            try:
                path.touch(exist_ok=True)
                if times is not None:
                    os.utime(path, times)
            except OSError as exc:
                raise from_os_error(exc, path, "touch") from exc
            self.logger.debug("Touched %s", path)

    def remove(self, files: PathsInput) -> None:
        """Remove files, links and directory trees; missing paths are ignored."""
        targets = sorted(
            as_path_list(files),
            key=lambda path: len(Path(os.path.abspath(path)).parts),
            reverse=True,
        )
        for path in targets:
            if not os.path.lexists(path):
                continue
            if path.is_dir() and not path.is_symlink():
                try:
                    for entry in walk_post_order(path):
                        self._remove_entry(entry)
                except OSError as exc:
                    raise from_os_error(exc, exc.filename or path, "remove") from exc
            else:
                self._remove_entry(path)
            self.logger.debug("Removed %s", path)

    def _remove_entry(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                os.rmdir(path)
            else:
                os.unlink(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise from_os_error(exc, path, "remove") from exc

    def chmod(
        self,
        files: PathsInput,
        mode: int,
        umask: int = 0o000,
        recursive: bool = False,
    ) -> BatchResult:
        """Apply ``mode & ~umask`` to each path.

        With ``recursive``, descendants are changed before their directory and
        links found while recursing are left alone.
        """
        effective_mode = mode & ~umask & 0o7777
        result = BatchResult()

        for path in as_path_list(files):
            if recursive and path.is_dir() and not path.is_symlink():

                def unreadable(exc: OSError, root: Path = path) -> None:
                    error = from_os_error(exc, exc.filename or root, "read directory")
                    self.logger.warning("%s", error)
                    result.failures.append(error)

                for entry in walk_post_order(path, onerror=unreadable):
                    if entry != path and entry.is_symlink():
                        continue
                    self._chmod_entry(entry, effective_mode, result)
            else:
                self._chmod_entry(path, effective_mode, result)
        return result

    def _chmod_entry(self, path: Path, mode: int, result: BatchResult) -> None:
        try:
            os.chmod(path, mode)
        except OSError as exc:
            error = from_os_error(exc, path, "change mode of")
            self.logger.warning("%s", error)
            result.failures.append(error)
            return
        self.logger.debug("Changed mode of %s to %o", path, mode)
        result.succeeded.append(path)

    def rename(self, source: PathInput, target: PathInput, overwrite: bool = False) -> None:
        source_path = Path(source)
        target_path = Path(target)

        if not overwrite and os.path.lexists(target_path):
            raise AlreadyExists(
                f"Cannot rename {source_path} to {target_path}: target already exists",
                paths=target_path,
            )

        move = os.replace if overwrite else os.rename
        try:
            move(source_path, target_path)
        except OSError as exc:
            raise from_os_error(exc, source_path, "rename", target=target_path) from exc
        self.logger.debug("Renamed %s -> %s", source_path, target_path)

    def symlink(self, source: PathInput, target: PathInput, copy_on_unsupported: bool = False) -> None:
        """Point the link ``target`` at ``source``, replacing a stale link.

        With ``copy_on_unsupported``, ``source`` is copied instead when
        ``target`` is not a link or the platform cannot create links.
        """
        link_text = os.fspath(source)
        link_path = Path(target)

        if link_path.is_symlink():
            if os.readlink(link_path) == link_text:
                self.logger.debug("Link %s already points at %s", link_path, link_text)
                return
            self.remove(link_path)
        elif os.path.lexists(link_path):
            if not copy_on_unsupported:
                raise AlreadyExists(
                    f"Cannot link {link_path} to {link_text}: target exists and is not a link",
                    paths=link_path,
                )
            self._copy_instead_of_link(link_text, link_path)
            return

        self.mkdir(link_path.parent).raise_for_failures()

        origin = self._link_origin(link_text, link_path)
        try:
            os.symlink(link_text, link_path, target_is_directory=origin.is_dir())
        except NotImplementedError as exc:
            self._handle_unsupported_link(link_text, link_path, copy_on_unsupported, exc)
            return
        except OSError as exc:
            if getattr(exc, "winerror", None) != _WINERROR_PRIVILEGE_NOT_HELD:
                raise from_os_error(exc, link_path, "create link", target=link_text) from exc
            self._handle_unsupported_link(link_text, link_path, copy_on_unsupported, exc)
            return
        self.logger.debug("Linked %s -> %s", link_path, link_text)

    @staticmethod
    def _link_origin(link_text: str, link_path: Path) -> Path:
        # Relative link text resolves against the directory holding the link.
        if is_absolute_path(link_text):
            return Path(link_text)
        return link_path.parent / link_text

    def _handle_unsupported_link(
        self,
        link_text: str,
        link_path: Path,
        copy_on_unsupported: bool,
        exc: BaseException,
    ) -> None:
        if not copy_on_unsupported:
            raise UnsupportedOperation(
                f"Cannot link {link_path} to {link_text}: symbolic links are not supported",
                paths=link_path,
                cause=exc,
            ) from exc
        self._copy_instead_of_link(link_text, link_path)

    def _copy_instead_of_link(self, link_text: str, link_path: Path) -> None:
        origin = self._link_origin(link_text, link_path)
        self.logger.debug("Copying %s to %s instead of linking", origin, link_path)
        if origin.is_dir():
            self.mirror(origin, link_path, MirrorOptions(override=True))
        else:
            self.copy(origin, link_path, force=True)

    def mirror(
        self,
        source: PathInput,
        target: PathInput,
        options: MirrorOptions | None = None,
    ) -> MirrorStats:
        return mirror_tree(self, Path(source), Path(target), options or MirrorOptions())

    @staticmethod
    def make_path_relative(end_path: PathInput, start_path: PathInput) -> str:
        return make_path_relative(end_path, start_path)

    @staticmethod
    def is_absolute_path(path: PathInput) -> bool:
        return is_absolute_path(path)

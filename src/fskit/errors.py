from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import Iterable


class FilesystemError(Exception):
    """Base error for failed filesystem operations.

    Carries the offending path(s) and the underlying cause, which is also
    chained as ``__cause__`` when raised through :func:`from_os_error`.
    """

    def __init__(
        self,
        message: str,
        paths: str | os.PathLike[str] | Iterable[str | os.PathLike[str]] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        if paths is None:
            self.paths: list[Path] = []
        elif isinstance(paths, (str, os.PathLike)):
            self.paths = [Path(paths)]
        else:
            self.paths = [Path(item) for item in paths]
        self.cause = cause

    @property
    def path(self) -> Path | None:
        return self.paths[0] if self.paths else None


class NotFound(FilesystemError):
    pass


class AlreadyExists(FilesystemError):
    pass


class PermissionDenied(FilesystemError):
    pass


class IOFailure(FilesystemError):
    pass


class UnsupportedOperation(FilesystemError):
    pass


def from_os_error(
    exc: OSError,
    path: str | os.PathLike[str],
    action: str,
    target: str | os.PathLike[str] | None = None,
) -> FilesystemError:
    if isinstance(exc, FileNotFoundError):
        error_cls: type[FilesystemError] = NotFound
    elif isinstance(exc, FileExistsError):
        error_cls = AlreadyExists
    elif isinstance(exc, PermissionError):
        error_cls = PermissionDenied
    elif exc.errno in {errno.ENOSYS, errno.EOPNOTSUPP}:
        error_cls = UnsupportedOperation
    else:
        error_cls = IOFailure

    reason = exc.strerror or str(exc)
    if target is None:
        return error_cls(f"Failed to {action} {path}: {reason}", paths=path, cause=exc)
    return error_cls(
        f"Failed to {action} {path} to {target}: {reason}", paths=[path, target], cause=exc
    )

from __future__ import annotations

import os
from pathlib import Path
import re
from typing import Iterable, Union


PathInput = Union[str, "os.PathLike[str]"]
PathsInput = Union[PathInput, Iterable[PathInput]]

_ABSOLUTE_PATTERN = re.compile(r"^(?:[/\\]|[A-Za-z]:[/\\])")


def as_path_list(files: PathsInput) -> list[Path]:
    if isinstance(files, (str, os.PathLike)):
        return [Path(files)]
    return [Path(item) for item in files]


def _segments(path: str, sep: str) -> list[str]:
    if sep != "/":
        path = path.replace(sep, "/")
    return [segment for segment in path.split("/") if segment]


def make_path_relative(end_path: PathInput, start_path: PathInput, sep: str = os.sep) -> str:
    """Return ``end_path`` relative to ``start_path``; both are treated as directories.

    >>> make_path_relative("/usr/lib/symfony/", "/var/lib/symfony/src", sep="/")
    '../../../../usr/lib/symfony/'
    """
    end_parts = _segments(os.fspath(end_path), sep)
    start_parts = _segments(os.fspath(start_path), sep)

    common = 0
    for end_segment, start_segment in zip(end_parts, start_parts):
        if end_segment != start_segment:
            break
        common += 1

    traverser = f"..{sep}" * (len(start_parts) - common)
    remainder = sep.join(end_parts[common:])
    return traverser + (f"{remainder}{sep}" if remainder else "")


def is_absolute_path(path: PathInput) -> bool:
    # UNC paths ("\\server\share", "//server/share") start with a separator too.
    return bool(_ABSOLUTE_PATTERN.match(os.fspath(path)))

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from fskit.errors import FilesystemError, IOFailure


@dataclass(slots=True)
class BatchResult:
    succeeded: list[Path] = field(default_factory=list)
    failures: list[FilesystemError] = field(default_factory=list)

    def __bool__(self) -> bool:
        return not self.failures

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_paths(self) -> list[Path]:
        paths: list[Path] = []
        for failure in self.failures:
            paths.extend(failure.paths)
        return paths

    def raise_for_failures(self) -> None:
        """Raise one aggregate IOFailure if any item of the batch failed."""
        if not self.failures:
            return
        listed = ", ".join(str(path) for path in self.failed_paths)
        raise IOFailure(
            f"{len(self.failures)} of {len(self.failures) + len(self.succeeded)} path(s) failed: {listed}",
            paths=self.failed_paths,
            cause=self.failures[0],
        ) from self.failures[0]


@dataclass(slots=True)
class MirrorOptions:
    delete: bool = False
    override: bool = False
    excludes: list[str] = field(default_factory=list)
    use_gitignore: bool = False
    follow_symlinks: bool = False
    copy_on_unsupported_links: bool = False
    dry_run: bool = False


@dataclass(slots=True)
class MirrorStats:
    created_dirs: int = 0
    copied: int = 0
    linked: int = 0
    skipped: int = 0
    excluded: int = 0
    deleted: int = 0


@dataclass(slots=True)
class CopyDecision:
    source: Path
    destination: Path
    relative: Path
    action: str

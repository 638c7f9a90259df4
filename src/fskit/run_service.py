from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging

from fskit.config import get_jobs, load_config
from fskit.errors import FilesystemError
from fskit.filesystem import Filesystem
from fskit.models import MirrorStats


EXIT_SUCCESS = 0
EXIT_RUNTIME_OR_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURES = 2
EXIT_INVALID_CONFIG = 3


@dataclass(slots=True)
class RunSummary:
    created_dirs: int = 0
    copied: int = 0
    linked: int = 0
    skipped: int = 0
    deleted: int = 0
    processed_jobs: int = 0
    failed_jobs: int = 0

    @property
    def partial_failures(self) -> bool:
        return self.failed_jobs > 0

    def absorb(self, stats: MirrorStats) -> None:
        self.created_dirs += stats.created_dirs
        self.copied += stats.copied
        self.linked += stats.linked
        self.skipped += stats.skipped
        self.deleted += stats.deleted
        self.processed_jobs += 1


def run_mirror_jobs(
    config_path: Path,
    job_name: str | None = None,
    dry_run: bool = False,
    continue_on_error: bool = True,
    logger: logging.Logger | None = None,
) -> tuple[int, RunSummary]:
    log = logger or logging.getLogger("fskit.run")

    try:
        config = load_config(config_path)
        jobs = get_jobs(config, job_name)
    except (OSError, ValueError) as exc:
        log.error("Invalid config: %s", exc)
        return EXIT_INVALID_CONFIG, RunSummary()

    summary = RunSummary()
    fs = Filesystem()

    for job in jobs:
        try:
            stats = fs.mirror(job.source, job.target, job.mirror_options(dry_run=dry_run))
        except FilesystemError as exc:
            summary.failed_jobs += 1
            log.error("[%s] mirror %s -> %s failed: %s", job.name, job.source, job.target, exc)
            if not continue_on_error:
                return EXIT_RUNTIME_OR_CONFIG_ERROR, summary
            continue

        summary.absorb(stats)
        log.info(
            "[%s] %s -> %s | created_dirs=%s copied=%s linked=%s skipped=%s excluded=%s deleted=%s%s",
            job.name,
            job.source,
            job.target,
            stats.created_dirs,
            stats.copied,
            stats.linked,
            stats.skipped,
            stats.excluded,
            stats.deleted,
            " (dry run)" if dry_run else "",
        )

    exit_code = EXIT_PARTIAL_FAILURES if summary.partial_failures else EXIT_SUCCESS
    return exit_code, summary

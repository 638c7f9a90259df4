from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from fskit.config import get_jobs, load_config
from fskit.errors import FilesystemError
from fskit.filesystem import Filesystem
from fskit.models import MirrorOptions, MirrorStats
from fskit.paths import is_absolute_path, make_path_relative
from fskit.run_service import (
    EXIT_INVALID_CONFIG,
    EXIT_RUNTIME_OR_CONFIG_ERROR,
    EXIT_SUCCESS,
    run_mirror_jobs,
)


LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fskit", description="Defensive filesystem operations")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the log level (default: config logLevel, else INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run mirror jobs from a config file")
    run_parser.add_argument("--config", required=True, type=Path)
    run_parser.add_argument("--job", help="Run only one job by name")
    run_parser.add_argument("--dry-run", action="store_true")
    run_parser.add_argument("--stop-on-error", action="store_true")

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    list_parser = subparsers.add_parser("list", help="List configured jobs")
    list_parser.add_argument("--config", required=True, type=Path)
    list_parser.add_argument("--job", help="List only one job by name")

    mirror_parser = subparsers.add_parser("mirror", help="Mirror one directory tree into another")
    mirror_parser.add_argument("source", type=Path)
    mirror_parser.add_argument("target", type=Path)
    mirror_parser.add_argument("--delete", action="store_true", help="Remove target entries missing from source")
    mirror_parser.add_argument("--override", action="store_true", help="Copy every file even if up to date")
    mirror_parser.add_argument("--exclude", action="append", default=[], metavar="PATTERN")
    mirror_parser.add_argument("--use-gitignore", action="store_true")
    mirror_parser.add_argument("--dry-run", action="store_true")

    relpath_parser = subparsers.add_parser("relpath", help="Print END relative to START")
    relpath_parser.add_argument("end")
    relpath_parser.add_argument("start")

    isabs_parser = subparsers.add_parser("isabs", help="Exit 0 when PATH is absolute")
    isabs_parser.add_argument("path")

    return parser


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("fskit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)


def _config_log_level(config_path: Path) -> str:
    try:
        return load_config(config_path).log_level
    except (OSError, ValueError):
        return "INFO"


def _print_stats(source: Path, target: Path, stats: MirrorStats) -> None:
    print(
        f"{source} -> {target} | created_dirs={stats.created_dirs} copied={stats.copied} "
        f"linked={stats.linked} skipped={stats.skipped} excluded={stats.excluded} "
        f"deleted={stats.deleted}"
    )


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path} ({len(config.jobs)} job(s), logLevel={config.log_level})")
    for job in config.jobs:
        print(
            f"  - job={job.name} "
            f"delete={str(job.delete).lower()} "
            f"override={str(job.override).lower()} "
            f"excludes={len(job.excludes)}"
        )
    return EXIT_SUCCESS


def cmd_list(config_path: Path, job_name: str | None) -> int:
    try:
        jobs = get_jobs(load_config(config_path), job_name)
    except (OSError, ValueError) as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    for job in jobs:
        flags = [name for name, enabled in (("delete", job.delete), ("override", job.override)) if enabled]
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"{job.name}: {job.source} -> {job.target}{suffix}")
    return EXIT_SUCCESS


def cmd_run(config_path: Path, job_name: str | None, dry_run: bool, stop_on_error: bool) -> int:
    exit_code, summary = run_mirror_jobs(
        config_path=config_path,
        job_name=job_name,
        dry_run=dry_run,
        continue_on_error=not stop_on_error,
    )
    if exit_code != EXIT_INVALID_CONFIG:
        print(
            f"jobs={summary.processed_jobs} failed={summary.failed_jobs} "
            f"copied={summary.copied} skipped={summary.skipped} deleted={summary.deleted}"
        )
    return exit_code


def cmd_mirror(source: Path, target: Path, options: MirrorOptions) -> int:
    try:
        stats = Filesystem().mirror(source, target, options)
    except FilesystemError as exc:
        print(f"Mirror failed: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_OR_CONFIG_ERROR
    _print_stats(source, target, stats)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        _configure_logging(args.log_level or _config_log_level(args.config))
    else:
        _configure_logging(args.log_level or "WARNING")

    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "list":
        return cmd_list(args.config, args.job)
    if args.command == "run":
        return cmd_run(
            config_path=args.config,
            job_name=args.job,
            dry_run=args.dry_run,
            stop_on_error=args.stop_on_error,
        )
    if args.command == "mirror":
        return cmd_mirror(
            args.source,
            args.target,
            MirrorOptions(
                delete=args.delete,
                override=args.override,
                excludes=args.exclude,
                use_gitignore=args.use_gitignore,
                dry_run=args.dry_run,
            ),
        )
    if args.command == "relpath":
        print(make_path_relative(args.end, args.start))
        return EXIT_SUCCESS
    if args.command == "isabs":
        absolute = is_absolute_path(args.path)
        print("absolute" if absolute else "relative")
        return EXIT_SUCCESS if absolute else EXIT_RUNTIME_OR_CONFIG_ERROR

    parser.print_help()
    return EXIT_RUNTIME_OR_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())

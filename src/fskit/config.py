from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml

from fskit.models import MirrorOptions


LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_EXCLUDES = [
    ".git/",
    "venv/",
    ".venv/",
    "__pycache__/",
    "*.pyc",
    "build/",
    "dist/",
]


@dataclass(slots=True)
class JobConfig:
    name: str
    source: Path
    target: Path
    delete: bool = False
    override: bool = False
    follow_symlinks: bool = False
    copy_on_unsupported_links: bool = False
    use_gitignore: bool = False
    excludes: list[str] = field(default_factory=list)

    def mirror_options(self, dry_run: bool = False) -> MirrorOptions:
        return MirrorOptions(
            delete=self.delete,
            override=self.override,
            excludes=list(self.excludes),
            use_gitignore=self.use_gitignore,
            follow_symlinks=self.follow_symlinks,
            copy_on_unsupported_links=self.copy_on_unsupported_links,
            dry_run=dry_run,
        )


@dataclass(slots=True)
class AppConfig:
    jobs: list[JobConfig]
    log_level: str = "INFO"


def _as_path(value: Any, field_name: str, base_dir: Path) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string path")
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _as_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_list_of_strings(value: Any, field_name: str, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def _load_job(raw_job: Any, index: int, base_dir: Path) -> JobConfig:
    prefix = f"jobs[{index}]"
    if not isinstance(raw_job, dict):
        raise ValueError(f"{prefix} must be an object")

    name = raw_job.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"{prefix}.name must be a non-empty string")

    return JobConfig(
        name=name,
        source=_as_path(raw_job.get("source"), f"{prefix}.source", base_dir),
        target=_as_path(raw_job.get("target"), f"{prefix}.target", base_dir),
        delete=_as_bool(raw_job.get("delete"), f"{prefix}.delete", default=False),
        override=_as_bool(raw_job.get("override"), f"{prefix}.override", default=False),
        follow_symlinks=_as_bool(
            raw_job.get("followSymlinks"), f"{prefix}.followSymlinks", default=False
        ),
        copy_on_unsupported_links=_as_bool(
            raw_job.get("copyOnUnsupportedLinks"),
            f"{prefix}.copyOnUnsupportedLinks",
            default=False,
        ),
        use_gitignore=_as_bool(raw_job.get("useGitignore"), f"{prefix}.useGitignore", default=False),
        excludes=_as_list_of_strings(
            raw_job.get("excludes"), f"{prefix}.excludes", default=DEFAULT_EXCLUDES
        ),
    )


def load_config(config_path: Path) -> AppConfig:
    """Load mirror jobs from a YAML or JSON file.

    Relative job paths are resolved against the directory holding the file.
    """
    raw = _load_raw_config(config_path)
    base_dir = config_path.parent

    log_level = raw.get("logLevel", "INFO")
    if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
        raise ValueError(f"logLevel must be one of: {', '.join(sorted(LOG_LEVELS))}")

    raw_jobs = raw.get("jobs")
    if not isinstance(raw_jobs, list) or not raw_jobs:
        raise ValueError("Config must contain non-empty 'jobs' list")

    jobs: list[JobConfig] = []
    names: set[str] = set()
    for index, raw_job in enumerate(raw_jobs):
        job = _load_job(raw_job, index, base_dir)
        if job.name in names:
            raise ValueError(f"Duplicate job name: {job.name}")
        names.add(job.name)
        jobs.append(job)

    return AppConfig(jobs=jobs, log_level=log_level.upper())


def get_jobs(config: AppConfig, job_name: str | None) -> list[JobConfig]:
    if not job_name:
        return config.jobs
    matched = [job for job in config.jobs if job.name == job_name]
    if not matched:
        raise ValueError(f"No job named '{job_name}' found")
    return matched

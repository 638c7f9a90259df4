import json
from pathlib import Path
import re

import pytest

from fskit.config import DEFAULT_EXCLUDES, get_jobs, load_config
from fskit.filesystem import Filesystem


def test_load_config_reads_jobs_and_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "fskit.yaml"
    config_file.write_text(
        """
logLevel: debug
jobs:
  - name: assets
    source: build/assets
    target: /srv/www/assets
    delete: true
    excludes: ["*.tmp", "  "]
  - name: docs
    source: docs
    target: site/docs
    override: true
    useGitignore: true
""".strip(),
        encoding="utf-8",
    )

    loaded = load_config(config_file)

    assert loaded.log_level == "DEBUG"
    assert [job.name for job in loaded.jobs] == ["assets", "docs"]
    assets, docs = loaded.jobs
    assert assets.source == tmp_path / "build" / "assets"
    assert assets.target == Path("/srv/www/assets")
    assert assets.delete is True
    assert assets.override is False
    assert assets.excludes == ["*.tmp"]
    assert docs.target == tmp_path / "site" / "docs"
    assert docs.use_gitignore is True
    assert docs.excludes == DEFAULT_EXCLUDES

    options = docs.mirror_options(dry_run=True)
    assert options.override is True
    assert options.delete is False
    assert options.use_gitignore is True
    assert options.dry_run is True


def test_load_config_supports_json(tmp_path: Path) -> None:
    config_file = tmp_path / "fskit.json"
    config_file.write_text(
        json.dumps({"jobs": [{"name": "j", "source": "a", "target": "b", "followSymlinks": True}]}),
        encoding="utf-8",
    )

    loaded = load_config(config_file)

    assert loaded.log_level == "INFO"
    assert loaded.jobs[0].follow_symlinks is True


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("jobs: []", "non-empty 'jobs' list"),
        ("jobs:\n  - name: j\n    target: b", "jobs[0].source must be a non-empty string path"),
        ("jobs:\n  - name: j\n    source: a\n    target: b\n    delete: 'yes'", "jobs[0].delete must be a boolean"),
        ("jobs:\n  - name: j\n    source: a\n    target: b\n    excludes: '*.tmp'", "jobs[0].excludes must be a list"),
        (
            "jobs:\n  - name: j\n    source: a\n    target: b\n  - name: j\n    source: c\n    target: d",
            "Duplicate job name: j",
        ),
        ("logLevel: LOUD\njobs:\n  - name: j\n    source: a\n    target: b", "logLevel must be one of"),
        ("- just\n- a list", "Config root must be an object"),
    ],
)
def test_load_config_rejects_invalid_files(tmp_path: Path, body: str, message: str) -> None:
    config_file = tmp_path / "fskit.yaml"
    config_file.write_text(body, encoding="utf-8")

    with pytest.raises(ValueError, match=re.escape(message)):
        load_config(config_file)


def test_load_config_rejects_unknown_suffix_and_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="does not exist"):
        load_config(tmp_path / "missing.yaml")

    config_file = tmp_path / "fskit.toml"
    config_file.write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match=".yaml/.yml or .json"):
        load_config(config_file)


def test_get_jobs_filters_by_name(tmp_path: Path) -> None:
    config_file = tmp_path / "fskit.yaml"
    config_file.write_text(
        "jobs:\n  - name: a\n    source: s1\n    target: t1\n  - name: b\n    source: s2\n    target: t2\n",
        encoding="utf-8",
    )
    config = load_config(config_file)

    assert [job.name for job in get_jobs(config, None)] == ["a", "b"]
    assert [job.name for job in get_jobs(config, "b")] == ["b"]
    with pytest.raises(ValueError, match="No job named 'c' found"):
        get_jobs(config, "c")


def test_default_excludes_keep_tooling_directories_out_of_mirror(tmp_path: Path) -> None:
    source = tmp_path / "src"
    (source / ".git").mkdir(parents=True)
    (source / ".git" / "HEAD").write_text("ref", encoding="utf-8")
    (source / "__pycache__").mkdir()
    (source / "__pycache__" / "m.cpython-312.pyc").write_bytes(b"")
    (source / "app.py").write_text("print('ok')", encoding="utf-8")
    config_file = tmp_path / "fskit.yaml"
    config_file.write_text("jobs:\n  - name: j\n    source: src\n    target: dst", encoding="utf-8")

    job = load_config(config_file).jobs[0]
    stats = Filesystem().mirror(job.source, job.target, job.mirror_options())

    assert job.excludes == DEFAULT_EXCLUDES
    assert job.excludes is not DEFAULT_EXCLUDES
    assert stats.excluded == 2
    assert sorted(path.name for path in job.target.iterdir()) == ["app.py"]

from pathlib import Path

from fskit.ignore_engine import IgnoreEngine, build_ignore_engine


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_ignore_engine_matches_files_and_directories() -> None:
    engine = IgnoreEngine(["*.log", "build/"])

    assert engine.is_ignored(Path("debug.log"))
    assert engine.is_ignored(Path("nested/trace.log"))
    assert engine.is_ignored(Path("build"), is_dir=True)
    assert not engine.is_ignored(Path("build"))
    assert not engine.is_ignored(Path("src/main.py"))


def test_empty_engine_ignores_nothing() -> None:
    engine = IgnoreEngine([])

    assert not engine.is_ignored(Path("anything"))
    assert not engine.is_ignored(Path(".git"), is_dir=True)


def test_build_ignore_engine_scopes_nested_gitignore_patterns(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "*.tmp\n")
    _write(tmp_path / "pkg" / ".gitignore", "# comment\n\ndist/\n/local.cfg\nsub/only.txt\n!keep.tmp\n")

    engine = build_ignore_engine(tmp_path, ["extra/"], use_gitignore=True)

    assert engine.is_ignored(Path("a.tmp"))
    assert engine.is_ignored(Path("extra"), is_dir=True)
    assert engine.is_ignored(Path("pkg/dist"), is_dir=True)
    assert engine.is_ignored(Path("pkg/deep/dist"), is_dir=True)
    assert not engine.is_ignored(Path("dist"), is_dir=True)
    assert engine.is_ignored(Path("pkg/local.cfg"))
    assert not engine.is_ignored(Path("pkg/deep/local.cfg"))
    assert engine.is_ignored(Path("pkg/sub/only.txt"))
    assert not engine.is_ignored(Path("pkg/keep.tmp"))
    assert engine.is_ignored(Path(".git"), is_dir=True)


def test_build_ignore_engine_skips_gitignore_files_unless_asked(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "*.tmp\n")

    engine = build_ignore_engine(tmp_path, [])

    assert not engine.is_ignored(Path("a.tmp"))
    assert not engine.is_ignored(Path(".git"), is_dir=True)

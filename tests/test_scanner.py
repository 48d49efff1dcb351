from __future__ import annotations

import os
from pathlib import Path

from annolint.audit import audit_path
from annolint.scanner import (
    build_file_contexts,
    build_project_context,
    discover_files,
    prepare_target,
    resolve_worker_count,
    worker_count_from_env,
)


def test_resolve_worker_count_default_uses_cpu_times_two(monkeypatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 4)
    assert resolve_worker_count(None) == 8
    assert resolve_worker_count("auto") == 8
    assert resolve_worker_count("nonsense") == 8
    assert resolve_worker_count("0") == 8


def test_resolve_worker_count_is_clamped_to_max(monkeypatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 64)
    assert resolve_worker_count(None) == 32
    assert resolve_worker_count("100") == 32
    assert resolve_worker_count(None, default=3) == 3


def test_worker_count_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ANNOLINT_WORKERS", "2")
    assert worker_count_from_env() == 2


def test_prepare_target_prefers_nearest_pyproject_in_parents(tmp_path: Path, monkeypatch) -> None:
    project_root = tmp_path / "repo"
    nested = project_root / "app" / "src"
    nested.mkdir(parents=True)
    (project_root / "pyproject.toml").write_text('[tool.annolint]\nfail-on = "never"\n', encoding="utf-8")
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: None)

    target = prepare_target(nested)
    assert target.project_root == project_root.resolve()
    assert target.config.fail_on == "never"


def test_prepare_target_falls_back_to_git_root_when_no_pyproject(tmp_path: Path, monkeypatch) -> None:
    start = tmp_path / "repo" / "src"
    start.mkdir(parents=True)
    repo_root = tmp_path / "repo"
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: repo_root)

    assert prepare_target(start).project_root == repo_root


def test_prepare_target_uses_start_dir_when_no_pyproject_or_git(tmp_path: Path, monkeypatch) -> None:
    start = tmp_path / "repo" / "src"
    start.mkdir(parents=True)
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: None)

    assert prepare_target(start).project_root == start.resolve()


def test_discover_files_skips_non_java_ignored_and_build_dirs(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: None)
    (tmp_path / "pyproject.toml").write_text('[tool.annolint.ignore]\npaths = ["gen/"]\n', encoding="utf-8")
    for rel in ["src/A.java", "src/B.kt", "gen/C.java", "build/D.java", "node_modules/E.java", "src/sub/F.JAVA"]:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("class X {}\n", encoding="utf-8")

    target = prepare_target(tmp_path)
    files = [p.relative_to(tmp_path.resolve()).as_posix() for p in discover_files(target)]
    assert files == ["src/A.java", "src/sub/F.JAVA"]

    single = prepare_target(tmp_path / "src" / "B.kt")
    assert discover_files(single) == []


def test_parallel_contexts_keep_input_order(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: None)
    paths = []
    for i in range(6):
        path = tmp_path / f"C{i}.java"
        path.write_text(f"class C{i} {{}}\n", encoding="utf-8")
        paths.append(path)
    paths.append(tmp_path / "Missing.java")

    target = prepare_target(tmp_path)
    project = build_project_context(target, paths)
    serial = build_file_contexts(project, paths, workers=1)
    parallel = build_file_contexts(project, paths, workers=4)

    assert [c.relative_path for c in serial] == [f"C{i}.java" for i in range(6)]
    assert [c.relative_path for c in parallel] == [c.relative_path for c in serial]
    assert all(c.unit is not None for c in parallel)


def test_partial_scan_resolves_supertypes_declared_elsewhere(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("annolint.scanner._git_root", lambda *_args, **_kwargs: None)
    (tmp_path / "pyproject.toml").write_text(
        "[tool.annolint]\nignore = { paths = [\"src/generated/*\"] }\n", encoding="utf-8"
    )
    rx_dir = tmp_path / "src" / "rx"
    rx_dir.mkdir(parents=True)
    (rx_dir / "UserObservable.java").write_text(
        "package rx;\n\nimport io.reactivex.Observable;\n\npublic abstract class UserObservable extends Observable<String> {}\n",
        encoding="utf-8",
    )
    generated = tmp_path / "src" / "generated"
    generated.mkdir()
    (generated / "Hidden.java").write_text(
        "package gen;\n\nimport io.reactivex.Single;\n\npublic abstract class Hidden extends Single<String> {}\n",
        encoding="utf-8",
    )
    app_dir = tmp_path / "src" / "app"
    app_dir.mkdir()
    (app_dir / "Repo.java").write_text(
        "package app;\n"
        "\n"
        "import gen.Hidden;\n"
        "import rx.UserObservable;\n"
        "\n"
        "class Repo {\n"
        "    UserObservable users() { return null; }\n"
        "\n"
        "    Hidden hidden() { return null; }\n"
        "}\n",
        encoding="utf-8",
    )

    for scan_path in (tmp_path, app_dir, app_dir / "Repo.java"):
        result = audit_path(scan_path)
        assert [(v.rule_id, v.location.start_line) for v in result.summary.violations if v.location] == [("R01", 7)]

    assert audit_path(app_dir / "Repo.java").summary.files_scanned == 1

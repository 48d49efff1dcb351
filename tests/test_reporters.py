from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console

from annolint.engine.types import Location, Violation, summarize
from annolint.reporters.json_reporter import REPORT_SCHEMA_VERSION, render_json
from annolint.reporters.sarif import render_sarif
from annolint.reporters.terminal import render_terminal
from annolint.rules.registry import build_rule_set


def _violations(tmp_path: Path) -> list[Violation]:
    file_path = tmp_path / "src" / "Repo.java"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text("class Repo {\n    Single<String> load() { return null; }\n}\n", encoding="utf-8")
    return [
        Violation(
            rule_id="R01",
            severity="error",
            message="Should annotate return value with @CheckResult",
            location=Location(path=file_path, start_line=2, start_col=5, end_line=2, end_col=43),
        ),
        Violation(
            rule_id="D01",
            severity="warn",
            message="Should apply @Named for primitives",
            location=Location(path=tmp_path / "src" / "AppModule.java", start_line=7, start_col=5),
        ),
        Violation(rule_id="D01", severity="info", message="no location"),
    ]


def test_summarize_orders_and_counts(tmp_path: Path) -> None:
    summary = summarize(files_scanned=2, violations=_violations(tmp_path))
    assert [v.rule_id for v in summary.violations] == ["D01", "D01", "R01"]
    assert (summary.counts.error, summary.counts.warn, summary.counts.info) == (1, 1, 1)


def test_render_terminal_includes_file_snippet_and_summary(tmp_path: Path) -> None:
    summary = summarize(files_scanned=2, violations=_violations(tmp_path))
    console = Console(record=True, width=120)
    render_terminal(summary, project_root=tmp_path, console=console)
    text = console.export_text()

    assert "Scanned 2 files" in text
    assert "src/Repo.java" in text
    assert "R01" in text and "(2:5)" in text
    assert "Single<String> load()" in text
    assert "3 issue(s): 1 error, 1 warn, 1 info" in text


def test_render_terminal_quiet_and_clean(tmp_path: Path) -> None:
    console = Console(record=True, width=120)
    render_terminal(summarize(files_scanned=0, violations=[]), project_root=tmp_path, console=console)
    assert "No issues found." in console.export_text()

    console = Console(record=True, width=120)
    summary = summarize(files_scanned=2, violations=_violations(tmp_path))
    render_terminal(summary, project_root=tmp_path, console=console, show_details=False)
    text = console.export_text()
    assert "src/Repo.java" not in text
    assert "3 issue(s)" in text


def test_render_json_schema(tmp_path: Path) -> None:
    summary = summarize(files_scanned=2, violations=_violations(tmp_path))
    data = json.loads(render_json(summary, project_root=tmp_path))

    assert data["schema_version"] == REPORT_SCHEMA_VERSION
    assert data["tool"]["name"] == "annolint"
    assert data["files_scanned"] == 2
    assert data["counts"] == {"error": 1, "warn": 1, "info": 1}
    r01 = next(v for v in data["violations"] if v["rule_id"] == "R01")
    assert r01["location"] == {"path": "src/Repo.java", "start_line": 2, "start_col": 5, "end_line": 2, "end_col": 43}
    assert any(v["location"] is None for v in data["violations"])


def test_render_sarif_levels_and_rules(tmp_path: Path) -> None:
    rule_set = build_rule_set()
    sarif = json.loads(render_sarif(_violations(tmp_path), project_root=tmp_path, rule_set=rule_set))

    run = sarif["runs"][0]
    assert sarif["version"] == "2.1.0"
    assert [r["id"] for r in run["tool"]["driver"]["rules"]] == ["D01", "R01"]

    results = run["results"]
    # Results without a location are dropped.
    assert [(r["ruleId"], r["level"]) for r in results] == [("R01", "error"), ("D01", "warning")]
    region = results[0]["locations"][0]["physicalLocation"]["region"]
    assert region == {"startLine": 2, "startColumn": 5, "endLine": 2, "endColumn": 43}
    assert results[0]["ruleIndex"] == 1
    assert results[0]["locations"][0]["physicalLocation"]["artifactLocation"]["uri"] == "src/Repo.java"

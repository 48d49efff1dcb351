from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from helpers import make_project

from annolint.audit import audit_path
from annolint.config import parse_config_table
from annolint.engine.context import RuleContext
from annolint.engine.detection import build_dispatch, detect, iter_nodes
from annolint.java.model import build_declarations
from annolint.rules.base import BaseRule, IssueDefinition
from annolint.rules.registry import build_rule_set

_REPO = (
    "package app;\n"
    "\n"
    "import io.reactivex.Observable;\n"
    "\n"
    "class Repo {\n"
    "    Observable<String> a() { return null; }\n"
    "}\n"
)


@dataclass(frozen=True, slots=True)
class _RecordingRule(BaseRule):
    meta = IssueDefinition(
        rule_id="Z99",
        title="Records visits",
        explanation="test",
        category="usability",
        priority=0,
        severity="info",
        node_kinds=("class_declaration", "method_declaration", "parameter_declaration"),
    )

    def _visit(self, node, ctx: RuleContext) -> None:
        self._report(ctx, node, f"{node.kind}:{node.name}")

    visit_class = _visit
    visit_method = _visit
    visit_parameter = _visit


def _write_project(tmp_path: Path, config: str = "") -> None:
    (tmp_path / "pyproject.toml").write_text(config, encoding="utf-8")
    path = tmp_path / "src" / "app" / "Repo.java"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_REPO, encoding="utf-8")


def test_audit_reports_default_severity(tmp_path: Path) -> None:
    _write_project(tmp_path)
    result = audit_path(tmp_path)
    assert result.summary.files_scanned == 1
    assert [(v.rule_id, v.severity) for v in result.summary.violations] == [("R01", "error")]
    assert result.summary.counts.error == 1


def test_severity_override_changes_reported_severity(tmp_path: Path) -> None:
    _write_project(tmp_path, '[tool.annolint.rules]\nseverity_overrides = { "R01" = "warning" }\n')
    result = audit_path(tmp_path)
    assert [(v.rule_id, v.severity) for v in result.summary.violations] == [("R01", "warn")]
    assert result.summary.counts.warn == 1


def test_ignore_severity_and_disable_turn_rule_off(tmp_path: Path) -> None:
    _write_project(tmp_path, "[tool.annolint.rules.R01]\nseverity = \"ignore\"\n")
    assert audit_path(tmp_path).summary.violations == ()

    _write_project(tmp_path, '[tool.annolint.rules]\ndisable = ["rx"]\n')
    assert audit_path(tmp_path).summary.violations == ()


def test_parallel_detection_matches_serial(project_ctx) -> None:
    sources = {
        f"src/app/Repo{i}.java": _REPO.replace("class Repo", f"class Repo{i}")
        for i in range(5)
    }
    project, contexts = make_project(project_ctx, sources)
    rule_set = build_rule_set()
    seen: list[Path] = []

    serial = detect(project, contexts, rule_set=rule_set, workers=1)
    parallel = detect(project, contexts, rule_set=rule_set, workers=4, on_file_done=seen.append)

    assert len(serial) == 5
    assert parallel == serial
    assert seen == [c.path for c in contexts]


def test_nodes_are_visited_class_methods_parameters_then_nested(project_ctx) -> None:
    project, (ctx,) = make_project(
        project_ctx,
        {
            "Outer.java": (
                "class Outer {\n"
                "    void a(int x, int y) {}\n"
                "    class Inner { void b() {} }\n"
                "    void c() {}\n"
                "}\n"
            )
        },
    )
    assert ctx.unit is not None
    order = [f"{n.kind}:{n.name}" for n in iter_nodes(build_declarations(ctx.unit, project.index))]
    assert order == [
        "class_declaration:Outer",
        "method_declaration:a",
        "parameter_declaration:x",
        "parameter_declaration:y",
        "method_declaration:c",
        "class_declaration:Inner",
        "method_declaration:b",
    ]

    rule_set = build_rule_set([_RecordingRule()]).select({"Z99"})
    assert set(build_dispatch(rule_set)) == {"class_declaration", "method_declaration", "parameter_declaration"}
    messages = [v.message for v in detect(project, [ctx], rule_set=rule_set)]
    assert messages == order


def test_detect_respects_enabled_rules_from_config(project_ctx) -> None:
    config = parse_config_table({"rules": {"enable": ["dagger"]}})
    project, contexts = make_project(replace(project_ctx, config=config), {"Repo.java": _REPO})
    assert detect(project, contexts, rule_set=build_rule_set()) == []

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from annolint import __version__
from annolint.engine.types import Violation
from annolint.rules.registry import RuleSet
from annolint.utils import safe_relpath

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"


def render_sarif(violations: list[Violation] | tuple[Violation, ...], *, project_root: Path, rule_set: RuleSet) -> str:
    driver_rules: list[dict[str, Any]] = []
    rule_index: dict[str, int] = {}
    for idx, issue in enumerate(rule_set.all_issues()):
        rule_index[issue.rule_id] = idx
        driver_rules.append(
            {
                "id": issue.rule_id,
                "name": issue.title,
                "shortDescription": {"text": issue.title},
                "fullDescription": {"text": issue.explanation},
                "help": {"text": issue.explanation},
                "defaultConfiguration": {"level": _sarif_level(issue.severity)},
                "properties": {
                    "category": issue.category,
                    "priority": issue.priority,
                },
            }
        )

    results: list[dict[str, Any]] = []
    for v in violations:
        res = _result(v, project_root=project_root, rule_index=rule_index)
        # Code scanning uploads reject results without a physical location.
        if "locations" not in res:
            continue
        results.append(res)

    sarif = {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {"driver": {"name": "annolint", "version": __version__, "rules": driver_rules}},
                "results": results,
            }
        ],
    }
    return json.dumps(sarif, indent=2, sort_keys=False)


def _result(v: Violation, *, project_root: Path, rule_index: dict[str, int]) -> dict[str, Any]:
    res: dict[str, Any] = {
        "ruleId": v.rule_id,
        "level": _sarif_level(v.severity),
        "message": {"text": v.message},
    }

    idx = rule_index.get(v.rule_id)
    if idx is not None:
        res["ruleIndex"] = idx

    if v.location is not None and v.location.path is not None and v.location.start_line is not None:
        region: dict[str, Any] = {
            "startLine": v.location.start_line,
            "startColumn": v.location.start_col or 1,
        }
        if v.location.end_line is not None:
            region["endLine"] = v.location.end_line
        if v.location.end_col is not None:
            region["endColumn"] = v.location.end_col

        res["locations"] = [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": safe_relpath(v.location.path, project_root)},
                    "region": region,
                }
            }
        ]

    return res


def _sarif_level(severity: str) -> str:
    if severity == "error":
        return "error"
    if severity == "warn":
        return "warning"
    return "note"

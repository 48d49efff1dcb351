from __future__ import annotations

from dataclasses import dataclass

import pytest

from annolint.config import DEFAULT_RULE_GROUPS
from annolint.engine.context import RuleContext
from annolint.rules.base import BaseRule, IssueDefinition
from annolint.rules.dagger import D01NamedForPrimitiveProviders
from annolint.rules.registry import RuleSet, build_rule_set, builtin_rules
from annolint.rules.rx import R01CheckResultOnRxReturnType


def _issue(rule_id: str, **overrides) -> IssueDefinition:
    fields = {
        "rule_id": rule_id,
        "title": "Plugin rule",
        "explanation": "plugin",
        "category": "correctness",
        "priority": 5,
        "severity": "info",
        "node_kinds": ("method_declaration",),
    }
    fields.update(overrides)
    return IssueDefinition(**fields)


@dataclass(frozen=True, slots=True)
class _PluginRule(BaseRule):
    meta = _issue("Z99")

    def visit_method(self, node, ctx: RuleContext) -> None:
        return None


def _rule_with(meta: IssueDefinition) -> BaseRule:
    rule = _PluginRule()
    object.__setattr__(rule, "meta", meta)
    return rule


def test_catalog_lists_every_builtin_issue_once() -> None:
    rule_set = build_rule_set()
    ids = [issue.rule_id for issue in rule_set.all_issues()]
    assert ids == ["D01", "R01"]
    assert len(ids) == len(set(ids))


def test_catalog_is_stable_across_calls() -> None:
    rule_set = build_rule_set()
    assert rule_set.all_issues() == rule_set.all_issues()
    assert build_rule_set().all_issues() == rule_set.all_issues()


def test_issue_definitions_carry_expected_metadata() -> None:
    issues = build_rule_set().issue_by_id()
    r01 = issues["R01"]
    assert r01.title == "Use @CheckResult"
    assert r01.category == "correctness"
    assert r01.priority == 10
    assert r01.severity == "error"
    assert r01.node_kinds == ("method_declaration",)

    d01 = issues["D01"]
    assert d01.title == "@Named for primitive types"
    assert d01.explanation == "@Named for primitive types"
    assert d01.node_kinds == ("class_declaration",)


def test_builtin_rule_groups_match_registry() -> None:
    assert set(DEFAULT_RULE_GROUPS["all"]) == {r.meta.rule_id for r in builtin_rules()}


def test_rule_by_id_accepts_aliases_and_lowercase() -> None:
    rule_set = build_rule_set()
    assert isinstance(rule_set.rule_by_id("r01"), R01CheckResultOnRxReturnType)
    assert isinstance(rule_set.rule_by_id("NamedForPrimitiveTypesOfProvidersEnforcer"), D01NamedForPrimitiveProviders)
    assert rule_set.rule_by_id("Z99") is None


def test_plugin_rules_join_the_catalog() -> None:
    rule_set = build_rule_set([_PluginRule()])
    assert [i.rule_id for i in rule_set.all_issues()] == ["D01", "R01", "Z99"]
    assert [r.meta.rule_id for r in rule_set.rules_for_kind("method_declaration")] == ["R01", "Z99"]


def test_plugin_id_colliding_with_builtin_raises() -> None:
    with pytest.raises(RuntimeError, match="conflicts with built-in"):
        build_rule_set([_rule_with(_issue("R01"))])


def test_duplicate_plugin_ids_raise() -> None:
    with pytest.raises(RuntimeError, match="Duplicate rule id"):
        build_rule_set([_PluginRule(), _PluginRule()])


@pytest.mark.parametrize(
    ("meta", "message"),
    [
        (_issue("z99"), "must match"),
        (_issue("X1"), "must match"),
        (_issue("Z98", priority=11), "priority"),
        (_issue("Z97", node_kinds=()), "no node kinds"),
    ],
)
def test_invalid_plugin_metadata_raises(meta: IssueDefinition, message: str) -> None:
    with pytest.raises(RuntimeError, match=message):
        build_rule_set([_rule_with(meta)])


def test_plain_rule_set_does_not_validate() -> None:
    # Direct construction keeps whatever it is given; validation is the host's job.
    rule_set = RuleSet([_PluginRule(), _PluginRule()])
    assert len(rule_set) == 2
    assert [i.rule_id for i in rule_set.all_issues()] == ["Z99", "Z99"]


def test_select_keeps_only_requested_rules() -> None:
    selected = build_rule_set().select({"R01"})
    assert [r.meta.rule_id for r in selected] == ["R01"]


def test_handlers_require_visit_method_for_each_declared_kind() -> None:
    rule = _rule_with(_issue("Z96", node_kinds=("class_declaration",)))
    with pytest.raises(TypeError, match="visit_class"):
        rule.handlers()

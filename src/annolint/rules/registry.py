from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache
from types import MappingProxyType

from annolint.engine.types import NodeKind
from annolint.rules.base import BaseRule, IssueDefinition
from annolint.rules.dagger import builtin_dagger_rules
from annolint.rules.rx import builtin_rx_rules

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")


class RuleSet:
    """
    The catalog of rules available to one analysis run.

    Built once at startup (see `build_rule_set`) and passed to the host
    explicitly. A RuleSet never validates its rules; id checks belong to the
    code that assembles it.
    """

    def __init__(self, rules: Iterable[BaseRule]) -> None:
        self._rules: tuple[BaseRule, ...] = tuple(sorted(rules, key=lambda r: r.meta.rule_id))
        self._issues: tuple[IssueDefinition, ...] = tuple(r.meta for r in self._rules)
        self._by_id: Mapping[str, BaseRule] = MappingProxyType({r.meta.rule_id: r for r in self._rules})

    def all_issues(self) -> tuple[IssueDefinition, ...]:
        return self._issues

    @property
    def rules(self) -> tuple[BaseRule, ...]:
        return self._rules

    def rule_ids(self) -> set[str]:
        return set(self._by_id)

    def rule_by_id(self, rule_id: str) -> BaseRule | None:
        canonical = rule_id.strip().upper()
        rule = self._by_id.get(canonical)
        if rule is not None:
            return rule
        for candidate in self._rules:
            if canonical in (alias.upper() for alias in candidate.meta.aliases):
                return candidate
        return None

    def issue_by_id(self) -> Mapping[str, IssueDefinition]:
        return MappingProxyType({issue.rule_id: issue for issue in self._issues})

    def rules_for_kind(self, kind: NodeKind) -> tuple[BaseRule, ...]:
        return tuple(r for r in self._rules if kind in r.applicable_node_kinds())

    def select(self, rule_ids: Iterable[str]) -> RuleSet:
        wanted = set(rule_ids)
        return RuleSet(r for r in self._rules if r.meta.rule_id in wanted)

    def __iter__(self) -> Iterator[BaseRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


@lru_cache(maxsize=1)
def builtin_rules() -> tuple[BaseRule, ...]:
    rules: list[BaseRule] = []
    rules.extend(builtin_rx_rules())
    rules.extend(builtin_dagger_rules())
    return tuple(rules)


def build_rule_set(extra_rules: Iterable[BaseRule] = ()) -> RuleSet:
    """
    Assemble the built-in rules plus any plugin rules into a RuleSet.

    This is the host integration point, so configuration defects surface
    here: malformed ids, bad priorities and id collisions raise RuntimeError.
    """

    by_id: dict[str, BaseRule] = {}
    builtin_ids = {r.meta.rule_id for r in builtin_rules()}
    for rule in (*builtin_rules(), *extra_rules):
        meta = rule.meta
        rule_id = meta.rule_id
        if not _RULE_ID_RE.match(rule_id):
            raise RuntimeError(f"Rule id must match {_RULE_ID_RE.pattern}: {rule_id!r}")
        if not 0 <= meta.priority <= 10:
            raise RuntimeError(f"Rule {rule_id} priority must be between 0 and 10, got {meta.priority}")
        if not meta.node_kinds:
            raise RuntimeError(f"Rule {rule_id} declares no node kinds")
        if rule_id in by_id:
            if rule_id in builtin_ids and rule is not by_id[rule_id]:
                raise RuntimeError(f"Plugin rule id conflicts with built-in rule id: {rule_id}")
            raise RuntimeError(f"Duplicate rule id: {rule_id}")
        by_id[rule_id] = rule
    return RuleSet(by_id.values())

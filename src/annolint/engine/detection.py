from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from pathlib import Path
from types import MappingProxyType
from typing import Any

from annolint.config import RulesConfig, compute_enabled_rule_ids
from annolint.engine.context import FileContext, ProjectContext, RuleContext, SyntaxNode
from annolint.engine.types import NodeKind, Violation
from annolint.java.model import build_declarations
from annolint.rules.base import IssueDefinition, NodeHandler
from annolint.rules.registry import RuleSet

logger = logging.getLogger(__name__)

Dispatch = Mapping[NodeKind, tuple[NodeHandler, ...]]


def detect(
    project: ProjectContext,
    files: Iterable[FileContext],
    *,
    rule_set: RuleSet,
    workers: int | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[Violation]:
    """
    Run the enabled rules of `rule_set` over every file context.

    Each file is analysed independently against the read-only project type
    index, so files may be spread over worker threads.
    """

    enabled_ids = compute_enabled_rule_ids(project.config, available_rule_ids=rule_set.rule_ids())
    active = rule_set.select(enabled_ids)
    logger.debug("enabled rules: %s", ", ".join(sorted(enabled_ids)) or "-")
    dispatch = build_dispatch(active)

    file_list = list(files)
    violations: list[Violation] = []
    effective_workers = workers or 1

    if effective_workers <= 1 or len(file_list) <= 1:
        for file_ctx in file_list:
            violations.extend(detect_file(project, file_ctx, rule_set=active, dispatch=dispatch))
            if on_file_done is not None:
                on_file_done(file_ctx.path)
        return violations

    max_workers = min(max(1, effective_workers), len(file_list))
    detect_one = partial(detect_file, project, rule_set=active, dispatch=dispatch)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for file_ctx, file_violations in zip(file_list, executor.map(detect_one, file_list), strict=True):
            violations.extend(file_violations)
            if on_file_done is not None:
                on_file_done(file_ctx.path)

    return violations


def build_dispatch(rule_set: RuleSet) -> Dispatch:
    table: dict[NodeKind, list[NodeHandler]] = {}
    for rule in rule_set:
        for kind, handler in rule.handlers().items():
            table.setdefault(kind, []).append(handler)
    return MappingProxyType({kind: tuple(handlers) for kind, handlers in table.items()})


def detect_file(
    project: ProjectContext,
    file_ctx: FileContext,
    *,
    rule_set: RuleSet,
    dispatch: Dispatch | None = None,
) -> list[Violation]:
    if file_ctx.unit is None:
        logger.debug("skipping %s: no syntax tree", file_ctx.relative_path)
        return []

    table = dispatch if dispatch is not None else build_dispatch(rule_set)
    issues = rule_set.issue_by_id()
    collected: list[Violation] = []

    def sink(violation: Violation) -> None:
        adjusted = _apply_overrides(project.config.rules, violation)
        if _is_suppressed(file_ctx, issues.get(adjusted.rule_id), adjusted):
            return
        collected.append(adjusted)

    ctx = RuleContext(file=file_ctx, report=sink)
    for node in iter_nodes(build_declarations(file_ctx.unit, project.index)):
        for handler in table.get(node.kind, ()):
            handler(node, ctx)
    return collected


def iter_nodes(roots: Iterable[SyntaxNode]) -> Iterator[SyntaxNode]:
    """Pre-order walk: a class, then its methods (each followed by its parameters), then nested classes."""

    stack: list[Any] = list(reversed(tuple(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(getattr(node, "children", ())))


def _apply_overrides(rules_cfg: RulesConfig, violation: Violation) -> Violation:
    severity = rules_cfg.severity_for(violation.rule_id)
    if severity is None or severity == violation.severity:
        return violation
    return replace(violation, severity=severity)


def _is_suppressed(ctx: FileContext, issue: IssueDefinition | None, violation: Violation) -> bool:
    aliases = issue.aliases if issue is not None else ()
    names = {violation.rule_id.upper(), *(a.upper() for a in aliases), "ALL"}
    node_suppressed: frozenset[str] = getattr(violation.node, "suppressed_ids", frozenset())
    if not names.isdisjoint(node_suppressed):
        return True
    line = violation.location.start_line if violation.location else None
    return ctx.suppressions.is_suppressed(violation.rule_id, line=line, aliases=aliases)

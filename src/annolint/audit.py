from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from annolint.engine.detection import detect
from annolint.engine.types import ScanSummary, summarize
from annolint.rules.plugins import load_plugin_rules
from annolint.rules.registry import RuleSet, build_rule_set
from annolint.scanner import (
    ScanTarget,
    build_file_contexts,
    build_project_context,
    discover_files,
    index_project,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    rule_set: RuleSet
    summary: ScanSummary


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    on_context_built: Callable[[Path], None] | None = None
    on_file_contexts_ready: Callable[[int], None] | None = None
    on_file_scanned: Callable[[Path], None] | None = None


def rule_set_for_target(target: ScanTarget) -> RuleSet:
    """Build the catalog for a project: built-in rules plus configured plugins."""

    return build_rule_set(load_plugin_rules(target.config.plugins))


def audit_path(scan_path: Path, *, callbacks: AuditCallbacks | None = None) -> AuditResult:
    target = prepare_target(scan_path)
    files = discover_files(target)
    return audit_files(target, files=files, callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: list[Path],
    rule_set: RuleSet | None = None,
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    """
    Parse `files`, index the project's types, and run the rule set over `files`.

    Indexing sees every file before any rule runs, so superclass chains that
    cross files resolve regardless of scan order.
    """

    if rule_set is None:
        rule_set = rule_set_for_target(target)
    logger.debug("catalog: %d rule(s) available", len(rule_set))

    workers = worker_count_from_env()
    project = build_project_context(target, files)
    file_contexts = build_file_contexts(
        project,
        files,
        workers=workers,
        on_path_done=callbacks.on_context_built if callbacks else None,
    )
    if callbacks and callbacks.on_file_contexts_ready is not None:
        callbacks.on_file_contexts_ready(len(file_contexts))

    project = index_project(project, file_contexts, workers=workers)
    violations = detect(
        project,
        file_contexts,
        rule_set=rule_set,
        workers=workers,
        on_file_done=callbacks.on_file_scanned if callbacks else None,
    )
    logger.debug("%d violation(s) in %d file(s)", len(violations), len(file_contexts))

    return AuditResult(
        target=target,
        files=tuple(files),
        rule_set=rule_set,
        summary=summarize(files_scanned=len(file_contexts), violations=violations),
    )

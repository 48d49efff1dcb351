from __future__ import annotations

from annolint.engine.context import FileContext, ProjectContext
from annolint.engine.detection import detect
from annolint.engine.types import Violation
from annolint.rules.registry import RuleSet, build_rule_set
from annolint.scanner import build_file_context, index_project


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str) -> FileContext:
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx is not None
    return ctx


def make_project(project_ctx: ProjectContext, sources: dict[str, str]) -> tuple[ProjectContext, list[FileContext]]:
    """Write `sources` under the project root, parse them and index their types."""

    contexts = [make_file_ctx(project_ctx, relpath=rel, content=text) for rel, text in sources.items()]
    return index_project(project_ctx, contexts), contexts


def run_rules(
    project_ctx: ProjectContext,
    sources: dict[str, str],
    *,
    rule_set: RuleSet | None = None,
) -> list[Violation]:
    project, contexts = make_project(project_ctx, sources)
    return detect(project, contexts, rule_set=rule_set or build_rule_set())

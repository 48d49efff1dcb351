from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from annolint import __version__
from annolint.audit import AuditCallbacks, AuditResult, audit_files, rule_set_for_target
from annolint.config import ConfigError, compute_enabled_rule_ids
from annolint.engine.tree_sitter import TreeSitterError
from annolint.engine.types import SEVERITY_RANK, ScanSummary
from annolint.logging_utils import configure_logging
from annolint.reporters.json_reporter import render_json
from annolint.reporters.sarif import render_sarif
from annolint.reporters.terminal import render_terminal
from annolint.rules.plugins import PluginLoadError
from annolint.rules.registry import RuleSet
from annolint.scanner import ScanTarget, discover_files, prepare_target

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="annolint: annotation checks for Java sources.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

_FAIL_ON_CHOICES = ("error", "warn", "info", "never")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long scans.", show_default=True),
    ] = True,
) -> None:
    """annolint CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def _load_target(path: Path) -> ScanTarget:
    try:
        return prepare_target(path)
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}", markup=False)
        raise typer.Exit(code=2) from exc


def _load_rule_set(target: ScanTarget) -> RuleSet:
    try:
        return rule_set_for_target(target)
    except PluginLoadError as exc:
        err_console.print(f"Failed to load plugins: {exc}", markup=False)
        raise typer.Exit(code=2) from exc
    except RuntimeError as exc:
        err_console.print(f"Invalid rule catalog: {exc}", markup=False)
        raise typer.Exit(code=2) from exc


def _emit_output(
    fmt: str,
    *,
    summary: ScanSummary,
    project_root: Path,
    rule_set: RuleSet,
    show_details: bool = True,
) -> None:
    normalized = fmt.strip().lower()
    if normalized == "terminal":
        render_terminal(summary, project_root=project_root, console=console, show_details=show_details)
        return
    if normalized == "json":
        typer.echo(render_json(summary, project_root=project_root))
        return
    if normalized == "sarif":
        typer.echo(render_sarif(summary.violations, project_root=project_root, rule_set=rule_set))
        return
    raise typer.BadParameter("Unsupported format. Use: terminal, json, sarif.")


def _audit_with_optional_progress(
    target: ScanTarget,
    *,
    rule_set: RuleSet,
    show_progress: bool,
) -> AuditResult:
    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    files = discover_files(target)
    logger.debug("discovered %d candidate file(s)", len(files))

    if not show_progress:
        return audit_files(target, files=files, rule_set=rule_set)

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )

    parse_task = progress.add_task("Parse", total=len(files))
    scan_task = progress.add_task("Scan", total=1)

    def _on_context_built(_path: Path) -> None:
        progress.advance(parse_task, 1)

    def _on_ready(total: int) -> None:
        progress.update(scan_task, total=total, completed=0)

    def _on_scanned(_path: Path) -> None:
        progress.advance(scan_task, 1)

    callbacks = AuditCallbacks(
        on_context_built=_on_context_built,
        on_file_contexts_ready=_on_ready,
        on_file_scanned=_on_scanned,
    )
    with progress:
        return audit_files(target, files=files, rule_set=rule_set, callbacks=callbacks)


def should_fail(summary: ScanSummary, fail_on: str) -> bool:
    """True when any violation is at or above the `fail_on` severity."""

    if fail_on == "never":
        return False
    threshold = SEVERITY_RANK[fail_on]
    return any(SEVERITY_RANK.get(v.severity, 0) >= threshold for v in summary.violations)


@app.command()
def scan(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="File or directory to scan (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json, sarif.", show_default=True),
    ] = "terminal",
    fail_on: Annotated[
        str | None,
        typer.Option("--fail-on", help="Exit 1 on violations at or above: error, warn, info, never (default: config)."),
    ] = None,
) -> None:
    """Scan Java sources and report annotation problems."""

    settings = _cli_settings()
    if fail_on is not None and fail_on.strip().lower() not in _FAIL_ON_CHOICES:
        raise typer.BadParameter("Unsupported --fail-on. Use: error, warn, info, never.")

    target = _load_target(path)
    rule_set = _load_rule_set(target)
    try:
        result = _audit_with_optional_progress(
            target,
            rule_set=rule_set,
            show_progress=settings["progress"] and not settings["quiet"] and output_format.strip().lower() == "terminal",
        )
    except TreeSitterError as exc:
        err_console.print(f"Parser unavailable: {exc}", markup=False)
        raise typer.Exit(code=2) from exc

    _emit_output(
        output_format,
        summary=result.summary,
        project_root=result.target.project_root,
        rule_set=result.rule_set,
        show_details=not settings["quiet"],
    )

    effective_fail_on = fail_on.strip().lower() if fail_on is not None else result.target.config.fail_on
    if should_fail(result.summary, effective_fail_on):
        raise typer.Exit(code=1)


@app.command()
def rules(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
    enabled_only: Annotated[
        bool,
        typer.Option("--enabled-only", help="Only show rules enabled by the current config."),
    ] = False,
) -> None:
    """
    List all available rules (built-in + plugin rules) and their metadata.
    """

    from rich.table import Table

    target = _load_target(path)
    rule_set = _load_rule_set(target)
    enabled_ids = compute_enabled_rule_ids(target.config, available_rule_ids=rule_set.rule_ids())

    rows = []
    for issue in rule_set.all_issues():
        enabled = issue.rule_id in enabled_ids
        if enabled_only and not enabled:
            continue
        rows.append(
            {
                "rule_id": issue.rule_id,
                "enabled": enabled,
                "title": issue.title,
                "explanation": issue.explanation,
                "category": issue.category,
                "priority": issue.priority,
                "default_severity": issue.severity,
                "node_kinds": list(issue.node_kinds),
                "aliases": list(issue.aliases),
            }
        )

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="annolint rules")
    table.add_column("ID", style="bold")
    table.add_column("Enabled", justify="center")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Priority", justify="right")
    table.add_column("Title")
    for row in rows:
        table.add_row(
            str(row["rule_id"]),
            "yes" if row["enabled"] else "no",
            str(row["default_severity"]),
            str(row["category"]),
            str(row["priority"]),
            str(row["title"]),
        )
    console.print(table)


@app.command()
def explain(
    rule_id: Annotated[
        str,
        typer.Argument(help="Rule id or lint name to explain (e.g. R01, D01)."),
    ],
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory used to load config + plugin rules (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    Explain a single rule (metadata + suppression/config hints).
    """

    from rich.panel import Panel
    from rich.syntax import Syntax
    from rich.text import Text

    from annolint.rules.examples import EXAMPLES

    target = _load_target(path)
    rule_set = _load_rule_set(target)

    rule = rule_set.rule_by_id(rule_id)
    if rule is None:
        raise typer.BadParameter(f"Unknown rule id: {rule_id!r}. Use `annolint rules` to list available rules.")

    meta = rule.meta
    example = EXAMPLES.get(meta.rule_id)

    normalized = output_format.strip().lower()
    if normalized == "json":
        payload = {
            "rule_id": meta.rule_id,
            "title": meta.title,
            "explanation": meta.explanation,
            "category": meta.category,
            "priority": meta.priority,
            "default_severity": meta.severity,
            "node_kinds": list(meta.node_kinds),
            "aliases": list(meta.aliases),
            "example": (
                {
                    "language": example.language,
                    "bad": example.bad,
                    "good": example.good,
                    "notes": example.notes,
                }
                if example is not None
                else None
            ),
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    header = Text()
    header.append(meta.rule_id, style="bold")
    header.append(" · ", style="dim")
    header.append(meta.title)

    details = "\n".join(
        [
            meta.explanation,
            "",
            f"Default severity: {meta.severity}",
            f"Category: {meta.category}",
            f"Priority: {meta.priority}",
            f"Aliases: {', '.join(meta.aliases) or '-'}",
        ]
    )
    console.print(Panel(Text(details), title=header, border_style="cyan"))

    console.print(Text("Config override (pyproject.toml):", style="bold"))
    console.print(
        Syntax(
            f"[tool.annolint.rules.{meta.rule_id}]\nseverity = \"warn\"  # or info/error/ignore\n",
            "toml",
            word_wrap=True,
        )
    )
    console.print(Text("Suppressions (in-file):", style="bold"))
    console.print(
        Syntax(
            "\n".join(
                [
                    f"// annolint: disable-file={meta.rule_id}",
                    f"// annolint: disable-next-line={meta.rule_id}",
                    f"@SuppressWarnings(\"{meta.rule_id}\")",
                    "",
                ]
            ),
            "java",
            word_wrap=True,
        )
    )

    if example is not None:
        console.print(Text("Example:", style="bold"))
        if example.notes:
            console.print(Text(example.notes, style="dim"))
        console.print(Text("Bad:", style="bold"))
        console.print(Syntax(example.bad, example.language, word_wrap=True))
        if example.good is not None:
            console.print(Text("Good:", style="bold"))
            console.print(Syntax(example.good, example.language, word_wrap=True))

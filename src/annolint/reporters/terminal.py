from __future__ import annotations

from collections.abc import Sequence
from itertools import groupby
from pathlib import Path

from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from annolint import __version__
from annolint.engine.types import ScanSummary, Violation
from annolint.utils import safe_relpath

_MARKERS = {
    "error": ("✖", "bold red"),
    "warn": ("⚠", "yellow"),
    "info": ("ℹ", "dim"),
}
_UNKNOWN_FILE = "<unknown>"


def render_terminal(summary: ScanSummary, *, project_root: Path, console: Console, show_details: bool = True) -> None:
    title = Text.assemble(("annolint ", "bold"), (f"v{__version__} · annotation audit", "dim"))
    console.print(Panel(title, subtitle=f"Scanned {summary.files_scanned} files", border_style="cyan"))

    if show_details:
        # `summary.violations` is already ordered by path, then position.
        for display_path, group in groupby(summary.violations, key=lambda v: _display_path(v, project_root)):
            console.print(_file_block(display_path, list(group), project_root=project_root))
            console.print()

    console.print(Rule(style="dim"))
    console.print(_counts_line(summary))
    console.print(Rule(style="dim"))


def _display_path(v: Violation, project_root: Path) -> str:
    if v.location is None or v.location.path is None:
        return _UNKNOWN_FILE
    return safe_relpath(v.location.path, project_root)


def _file_block(display_path: str, violations: Sequence[Violation], *, project_root: Path) -> Group:
    source_lines: list[str] = []
    if display_path != _UNKNOWN_FILE:
        source_lines = _source_lines(project_root / display_path)

    rows: list[Text] = [Text(display_path, style="bold underline")]
    for v in violations:
        icon, style = _MARKERS.get(v.severity, ("•", ""))
        row = Text("  ")
        row.append(f"{icon} {v.rule_id}", style=style)
        line_no = v.location.start_line if v.location is not None else None
        if line_no is not None:
            col = v.location.start_col if v.location is not None else None
            row.append(f"  ({line_no}:{col})" if col is not None else f"  ({line_no})", style="dim")
        row.append(f"  {v.message}")
        rows.append(row)

        if line_no is not None and 0 < line_no <= len(source_lines):
            # Plain Text keeps Java generics and brackets away from rich markup.
            rows.append(Text(f"     {line_no:>4} │ {source_lines[line_no - 1].rstrip()}", style="dim"))
    return Group(*rows)


def _counts_line(summary: ScanSummary) -> Text:
    if not summary.violations:
        return Text("No issues found.", style="bold green")
    counts = summary.counts
    return Text(
        f"{len(summary.violations)} issue(s): {counts.error} error, {counts.warn} warn, {counts.info} info",
        style="bold",
    )


def _source_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path

from annolint.config import AnnolintConfig, load_config, path_is_ignored
from annolint.engine.context import FileContext, ProjectContext
from annolint.engine.tree_sitter import parse as ts_parse
from annolint.java.index import TypeIndex
from annolint.java.syntax import CompilationUnitSyntax, extract_compilation_unit
from annolint.suppressions import parse_suppressions
from annolint.utils import safe_relpath

logger = logging.getLogger(__name__)

JAVA_EXTENSIONS = frozenset({".java"})

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".gradle",
    ".vscode",
    "node_modules",
    "build",
    "out",
    "target",
}

ANNOLINT_WORKERS_ENV = "ANNOLINT_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: AnnolintConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    fallback = min(max(1, default if default is not None else cpu * 2), max_workers)
    if raw_value is None or raw_value.strip().lower() in {"", "auto", "default"}:
        return fallback

    try:
        workers = int(raw_value.strip())
    except ValueError:
        return fallback
    return fallback if workers <= 0 else min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(ANNOLINT_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path) -> ScanTarget:
    """
    Resolve project root and load configuration.

    The project root is the closest directory holding a pyproject.toml, else
    the git root, else the scanned directory (or the file's parent).
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=load_config(project_root))


def discover_files(target: ScanTarget) -> list[Path]:
    scan_path = target.scan_path
    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    if scan_path.is_file():
        if scan_path.suffix.lower() not in JAVA_EXTENSIONS:
            return []
        if path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
            return []
        return [scan_path]

    return _walk_java_files(scan_path, project_root=root, ignore_patterns=ignore_patterns)


def _walk_java_files(start: Path, *, project_root: Path, ignore_patterns: tuple[str, ...]) -> list[Path]:
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(start, topdown=True):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS]
        base = Path(dirpath)
        for filename in filenames:
            path = base / filename
            if path.suffix.lower() not in JAVA_EXTENSIONS:
                continue
            if path_is_ignored(path, project_root=project_root, ignore_patterns=ignore_patterns):
                continue
            files.append(path)

    return sorted(set(files))


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
    )


def index_project(project: ProjectContext, contexts: list[FileContext], *, workers: int = 1) -> ProjectContext:
    """
    Return `project` with a type index covering every parsed file.

    When only part of the project is scanned, the remaining Java files under
    the project root are parsed for the index too, so supertypes declared
    outside the scan path still resolve. Rules only run on `contexts`.
    """

    units = [ctx.unit for ctx in contexts if ctx.unit is not None]
    if project.scan_path != project.project_root:
        scanned = {ctx.path for ctx in contexts}
        others = [
            path
            for path in _walk_java_files(
                project.project_root,
                project_root=project.project_root,
                ignore_patterns=project.config.ignore.paths,
            )
            if path not in scanned
        ]
        logger.debug("indexing %d project file(s) outside the scan path", len(others))
        units.extend(_parse_units(others, workers=workers))

    return replace(project, index=TypeIndex.build(units))


def _parse_unit(path: Path) -> CompilationUnitSyntax | None:
    try:
        source = path.read_bytes()
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return None
    syntax_tree = ts_parse(source)
    if syntax_tree is None:
        return None
    return extract_compilation_unit(syntax_tree, source, path=path)


def _parse_units(paths: list[Path], *, workers: int) -> list[CompilationUnitSyntax]:
    if workers <= 1 or len(paths) <= 1:
        parsed = [_parse_unit(p) for p in paths]
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(paths))) as executor:
            parsed = list(executor.map(_parse_unit, paths))
    return [unit for unit in parsed if unit is not None]


def build_file_context(project: ProjectContext, path: Path) -> FileContext | None:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("cannot read %s: %s", path, exc)
        return None
    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext:
    lines = tuple(text.splitlines())
    source = text.encode("utf-8", errors="replace")
    syntax_tree = ts_parse(source)
    unit = None
    if syntax_tree is not None:
        unit = extract_compilation_unit(syntax_tree, source, path=path)
        if getattr(syntax_tree.root_node, "has_error", False):
            logger.debug("%s has syntax errors; analysing the parts that parsed", path)
    else:
        logger.debug("failed to parse %s", path)

    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=safe_relpath(path, project.project_root),
        text=text,
        lines=lines,
        suppressions=parse_suppressions(lines),
        syntax_tree=syntax_tree,
        unit=unit,
    )


def build_file_contexts(
    project: ProjectContext,
    paths: list[Path],
    *,
    workers: int = 1,
    on_path_done: Callable[[Path], None] | None = None,
) -> list[FileContext]:
    """
    Build FileContext objects for paths, optionally in parallel.

    Ordering is deterministic: returned contexts follow the input `paths` order,
    with unreadable files filtered out (matching serial behavior).
    """

    contexts: list[FileContext] = []
    if workers <= 1 or len(paths) <= 1:
        for path in paths:
            ctx = build_file_context(project, path)
            if on_path_done is not None:
                on_path_done(path)
            if ctx is not None:
                contexts.append(ctx)
        return contexts

    max_workers = min(max(1, workers), len(paths))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        build_ctx = partial(build_file_context, project)
        for path, ctx in zip(paths, executor.map(build_ctx, paths), strict=True):
            if on_path_done is not None:
                on_path_done(path)
            if ctx is not None:
                contexts.append(ctx)
    return contexts


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in [base, *base.parents]:
        if (candidate / "pyproject.toml").exists():
            return candidate

    root = _git_root(cwd=base)
    if root is not None:
        return root
    return base


def _git_root(*, cwd: Path) -> Path | None:
    # Best effort: a missing git binary or a non-repo directory is not an error.
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError, PermissionError):
        return None
    return Path(out) if out else None

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from annolint.config import AnnolintConfig
from annolint.engine.types import Location, NodeKind, ResolvedType, Violation
from annolint.java.index import TypeIndex
from annolint.java.syntax import CompilationUnitSyntax
from annolint.suppressions import Suppressions


class SyntaxTree(Protocol):
    # tree-sitter Tree exposes `root_node`; we treat nodes structurally.
    root_node: Any


class SyntaxNode(Protocol):
    kind: NodeKind
    name: str
    location: Location

    @property
    def children(self) -> tuple[SyntaxNode, ...]: ...

    def has_annotation(self, qualified_name: str) -> bool: ...


class ParameterNode(SyntaxNode, Protocol):
    type: ResolvedType | None


class MethodNode(SyntaxNode, Protocol):
    return_type: ResolvedType | None
    parameters: tuple[ParameterNode, ...]


class ClassNode(SyntaxNode, Protocol):
    methods: tuple[MethodNode, ...]


ReportSink = Callable[[Violation], None]


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: AnnolintConfig
    index: TypeIndex = field(default_factory=TypeIndex)


@dataclass(frozen=True, slots=True)
class FileContext:
    project_root: Path
    path: Path
    relative_path: str
    text: str
    lines: tuple[str, ...]
    suppressions: Suppressions
    syntax_tree: SyntaxTree | None = None
    unit: CompilationUnitSyntax | None = None


@dataclass(frozen=True, slots=True)
class RuleContext:
    """What a rule handler sees besides the node: the file and the reporting sink."""

    file: FileContext | None
    report: ReportSink

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

Severity = Literal["error", "warn", "info", "ignore"]
Category = Literal["correctness", "security", "performance", "usability"]
NodeKind = Literal["class_declaration", "method_declaration", "parameter_declaration"]

SEVERITY_RANK: dict[str, int] = {"ignore": 0, "info": 1, "warn": 2, "error": 3}


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class ResolvedType:
    """
    A type as seen by the rules: its canonical text plus its direct supertypes.

    `canonical_text` is fully qualified and keeps generic arguments, e.g.
    `io.reactivex.Observable<java.lang.String>`. For class types the direct
    superclass is always the first entry of `supertypes`, followed by the
    implemented interfaces.
    """

    canonical_text: str
    supertypes: tuple[ResolvedType, ...] = ()

    @property
    def is_void(self) -> bool:
        return self.canonical_text == "void"


@dataclass(frozen=True, slots=True)
class Violation:
    rule_id: str
    severity: Severity
    message: str
    location: Location | None = None
    node: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class SeverityCounts:
    error: int = 0
    warn: int = 0
    info: int = 0


@dataclass(frozen=True, slots=True)
class ScanSummary:
    files_scanned: int
    violations: tuple[Violation, ...]
    counts: SeverityCounts = field(default_factory=SeverityCounts)


def summarize(*, files_scanned: int, violations: list[Violation]) -> ScanSummary:
    ordered = sorted(violations, key=_sort_key)
    return ScanSummary(
        files_scanned=files_scanned,
        violations=tuple(ordered),
        counts=SeverityCounts(
            error=sum(1 for v in ordered if v.severity == "error"),
            warn=sum(1 for v in ordered if v.severity == "warn"),
            info=sum(1 for v in ordered if v.severity == "info"),
        ),
    )


def _sort_key(v: Violation) -> tuple[str, int, int, str]:
    loc = v.location
    path = loc.path.as_posix() if loc is not None and loc.path is not None else ""
    line = loc.start_line if loc is not None and loc.start_line is not None else 0
    col = loc.start_col if loc is not None and loc.start_col is not None else 0
    return path, line, col, v.rule_id

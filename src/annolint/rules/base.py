from __future__ import annotations

from abc import ABC
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from annolint.engine.context import RuleContext, SyntaxNode
from annolint.engine.types import Category, Location, NodeKind, Severity, Violation

NodeHandler = Callable[[Any, RuleContext], None]

# Visit callback name per node kind; rules implement the ones they declare.
VISIT_METHODS: Mapping[NodeKind, str] = MappingProxyType(
    {
        "class_declaration": "visit_class",
        "method_declaration": "visit_method",
        "parameter_declaration": "visit_parameter",
    }
)


@dataclass(frozen=True, slots=True)
class IssueDefinition:
    """Static description of what a rule detects. One per rule, never mutated."""

    rule_id: str
    title: str
    explanation: str
    category: Category
    priority: int  # 0..10, 10 = most urgent
    severity: Severity
    node_kinds: tuple[NodeKind, ...]
    aliases: tuple[str, ...] = ()


class BaseRule(ABC):
    """
    A detector: declares the node kinds it wants and gets one callback per node.

    Subclasses set `meta` and implement `visit_<kind>(node, ctx)` for every
    kind listed in `meta.node_kinds`. Handlers must not keep state between
    calls; the same rule instance is shared by all worker threads.
    """

    meta: IssueDefinition

    def applicable_node_kinds(self) -> tuple[NodeKind, ...]:
        return self.meta.node_kinds

    def handlers(self) -> Mapping[NodeKind, NodeHandler]:
        out: dict[NodeKind, NodeHandler] = {}
        for kind in self.applicable_node_kinds():
            handler = getattr(self, VISIT_METHODS[kind], None)
            if handler is None:
                raise TypeError(f"{type(self).__name__} declares {kind!r} but has no {VISIT_METHODS[kind]}()")
            out[kind] = handler
        return MappingProxyType(out)

    def _report(self, ctx: RuleContext, node: SyntaxNode, message: str, *, location: Location | None = None) -> None:
        ctx.report(
            Violation(
                rule_id=self.meta.rule_id,
                severity=self.meta.severity,
                message=message,
                location=location or node.location,
                node=node,
            )
        )

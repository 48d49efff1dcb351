from __future__ import annotations

from dataclasses import dataclass

from annolint.engine.classify import has_annotation, is_of_interesting_type
from annolint.engine.context import MethodNode, RuleContext
from annolint.rules.base import BaseRule, IssueDefinition

RX_PRIMITIVES = frozenset(
    {
        "io.reactivex.Observable",
        "io.reactivex.Single",
        "io.reactivex.Completable",
        "io.reactivex.Maybe",
        "io.reactivex.Flowable",
    }
)
CHECK_RESULT_ANNOTATION = "android.support.annotation.CheckResult"


@dataclass(frozen=True, slots=True)
class R01CheckResultOnRxReturnType(BaseRule):
    meta = IssueDefinition(
        rule_id="R01",
        title="Use @CheckResult",
        explanation=(
            "It's easy to forget calling subscribe() on methods that return Rx primitives like Observable, "
            "Single, etc. Annotate this method with @CheckResult so that Android Studio shows a warning when "
            "the return value is not used."
        ),
        category="correctness",
        priority=10,
        severity="error",
        node_kinds=("method_declaration",),
        aliases=("RxCheckResultAnnotationEnforcer",),
    )

    def visit_method(self, method: MethodNode, ctx: RuleContext) -> None:
        return_type = method.return_type
        if return_type is None or return_type.is_void:
            # Constructor, void method, or a type we could not resolve.
            return
        if not is_of_interesting_type(return_type, RX_PRIMITIVES):
            return
        if not has_annotation(method, CHECK_RESULT_ANNOTATION):
            self._report(ctx, method, "Should annotate return value with @CheckResult")


def builtin_rx_rules() -> list[BaseRule]:
    return [R01CheckResultOnRxReturnType()]

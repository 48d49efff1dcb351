from __future__ import annotations

from dataclasses import dataclass

from annolint.engine.classify import has_annotation
from annolint.engine.context import ClassNode, RuleContext
from annolint.rules.base import BaseRule, IssueDefinition

MODULE_ANNOTATION = "dagger.Module"
PROVIDES_ANNOTATION = "dagger.Provides"
NAMED_ANNOTATION = "javax.inject.Named"

PRIMITIVE_PROVIDED_TYPES = frozenset(
    {
        "byte",
        "short",
        "int",
        "float",
        "double",
        "boolean",
        "java.lang.String",
    }
)


@dataclass(frozen=True, slots=True)
class D01NamedForPrimitiveProviders(BaseRule):
    """
    Flags `@Provides` methods of a `@Module` that hand out a primitive or String without `@Named`.

    Two such providers of the same type are indistinguishable to the injector.
    Only the return type is inspected; classes without `@Module` are skipped
    entirely, whatever their methods look like.
    """

    meta = IssueDefinition(
        rule_id="D01",
        title="@Named for primitive types",
        explanation="@Named for primitive types",
        category="correctness",
        priority=10,
        severity="error",
        node_kinds=("class_declaration",),
        aliases=("NamedForPrimitiveTypesOfProvidersEnforcer",),
    )

    def visit_class(self, cls: ClassNode, ctx: RuleContext) -> None:
        if not has_annotation(cls, MODULE_ANNOTATION):
            return
        for method in cls.methods:
            if not has_annotation(method, PROVIDES_ANNOTATION):
                continue
            return_type = method.return_type
            if return_type is None or return_type.canonical_text not in PRIMITIVE_PROVIDED_TYPES:
                continue
            if not has_annotation(method, NAMED_ANNOTATION):
                self._report(ctx, method, "Should apply @Named for primitives")


def builtin_dagger_rules() -> list[BaseRule]:
    return [D01NamedForPrimitiveProviders()]

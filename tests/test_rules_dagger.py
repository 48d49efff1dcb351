from __future__ import annotations

from pathlib import Path

from helpers import run_rules

from annolint.engine.context import RuleContext
from annolint.engine.types import Location, ResolvedType, Violation
from annolint.java.model import JavaClass, JavaMethod
from annolint.rules.dagger import (
    MODULE_ANNOTATION,
    NAMED_ANNOTATION,
    PROVIDES_ANNOTATION,
    D01NamedForPrimitiveProviders,
)

_LOC = Location(path=Path("AppModule.java"), start_line=1, start_col=1)


def _provider(return_type: str, *annotations: str, line: int = 5) -> JavaMethod:
    return JavaMethod(
        name="provide",
        return_type=ResolvedType(return_type),
        parameters=(),
        location=Location(path=Path("AppModule.java"), start_line=line, start_col=5),
        annotations=frozenset(annotations),
    )


def _module(*methods: JavaMethod, annotations: frozenset[str] = frozenset({MODULE_ANNOTATION})) -> JavaClass:
    return JavaClass(
        name="AppModule",
        qualified_name="com.example.AppModule",
        type_kind="class",
        methods=methods,
        nested=(),
        location=_LOC,
        annotations=annotations,
    )


def _visit(cls: JavaClass) -> list[Violation]:
    out: list[Violation] = []
    D01NamedForPrimitiveProviders().visit_class(cls, RuleContext(file=None, report=out.append))
    return out


def test_primitive_provider_without_named_is_reported() -> None:
    violations = _visit(_module(_provider("int", PROVIDES_ANNOTATION, line=7)))
    assert len(violations) == 1
    v = violations[0]
    assert v.rule_id == "D01"
    assert v.message == "Should apply @Named for primitives"
    assert v.location is not None and v.location.start_line == 7


def test_every_primitive_provided_type_is_checked() -> None:
    types = ["byte", "short", "int", "float", "double", "boolean", "java.lang.String"]
    methods = [_provider(t, PROVIDES_ANNOTATION, line=i + 2) for i, t in enumerate(types)]
    violations = _visit(_module(*methods))
    assert [v.location.start_line for v in violations if v.location] == [i + 2 for i in range(len(types))]


def test_long_char_and_boxed_types_are_not_checked() -> None:
    methods = [
        _provider("long", PROVIDES_ANNOTATION),
        _provider("char", PROVIDES_ANNOTATION),
        _provider("java.lang.Integer", PROVIDES_ANNOTATION),
        _provider("com.example.Api", PROVIDES_ANNOTATION),
    ]
    assert _visit(_module(*methods)) == []


def test_named_provider_is_clean() -> None:
    assert _visit(_module(_provider("java.lang.String", PROVIDES_ANNOTATION, NAMED_ANNOTATION))) == []


def test_method_without_provides_is_ignored() -> None:
    assert _visit(_module(_provider("int"))) == []


def test_class_without_module_is_ignored() -> None:
    cls = _module(_provider("int", PROVIDES_ANNOTATION), annotations=frozenset())
    assert _visit(cls) == []


def test_java_module_with_mixed_providers(project_ctx) -> None:
    violations = run_rules(
        project_ctx,
        {
            "src/com/example/AppModule.java": (
                "package com.example;\n"
                "\n"
                "import dagger.Module;\n"
                "import dagger.Provides;\n"
                "import javax.inject.Named;\n"
                "\n"
                "@Module\n"
                "public class AppModule {\n"
                "    @Provides\n"
                "    String baseUrl() { return \"https://example.com\"; }\n"
                "\n"
                "    @Provides\n"
                "    @Named(\"timeout\")\n"
                "    int timeout() { return 30; }\n"
                "\n"
                "    @Provides\n"
                "    boolean debug() { return false; }\n"
                "\n"
                "    int notProvided() { return 1; }\n"
                "}\n"
            )
        },
    )
    assert [(v.rule_id, v.location.start_line) for v in violations if v.location] == [("D01", 9), ("D01", 16)]


def test_java_class_without_module_annotation_is_clean(project_ctx) -> None:
    violations = run_rules(
        project_ctx,
        {
            "Plain.java": (
                "import dagger.Provides;\n"
                "\n"
                "class Plain {\n"
                "    @Provides\n"
                "    String name() { return \"x\"; }\n"
                "}\n"
            )
        },
    )
    assert violations == []


def test_java_wildcard_imports_resolve_dagger_annotations(project_ctx) -> None:
    violations = run_rules(
        project_ctx,
        {
            "NetModule.java": (
                "import dagger.*;\n"
                "import javax.inject.*;\n"
                "\n"
                "@Module\n"
                "abstract class NetModule {\n"
                "    @Provides @Named(\"host\") static String host() { return \"h\"; }\n"
                "    @Provides static double ratio() { return 0.5; }\n"
                "}\n"
            )
        },
    )
    assert [(v.rule_id, v.location.start_line) for v in violations if v.location] == [("D01", 7)]

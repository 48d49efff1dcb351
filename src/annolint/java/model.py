from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from annolint.engine.types import Location, NodeKind, ResolvedType
from annolint.java.index import TypeIndex, scope_for_unit
from annolint.java.resolver import TypeResolver
from annolint.java.syntax import (
    AnnotationSyntax,
    CompilationUnitSyntax,
    MethodSyntax,
    ParameterSyntax,
    TypeDeclarationSyntax,
    TypeKind,
    TypeRef,
)

# Annotations whose string values name rules to silence on the declaration.
_SUPPRESS_ANNOTATIONS = {"SuppressWarnings", "SuppressLint"}


@dataclass(frozen=True, slots=True)
class JavaParameter:
    name: str
    type: ResolvedType | None
    location: Location
    annotations: frozenset[str] = frozenset()
    suppressed_ids: frozenset[str] = frozenset()
    kind: NodeKind = "parameter_declaration"

    @property
    def children(self) -> tuple[()]:
        return ()

    def has_annotation(self, qualified_name: str) -> bool:
        return qualified_name in self.annotations


@dataclass(frozen=True, slots=True)
class JavaMethod:
    name: str
    return_type: ResolvedType | None
    parameters: tuple[JavaParameter, ...]
    location: Location
    annotations: frozenset[str] = frozenset()
    suppressed_ids: frozenset[str] = frozenset()
    is_constructor: bool = False
    local_types: tuple[JavaClass, ...] = ()
    kind: NodeKind = "method_declaration"

    @property
    def children(self) -> tuple[JavaParameter | JavaClass, ...]:
        return (*self.parameters, *self.local_types)

    def has_annotation(self, qualified_name: str) -> bool:
        return qualified_name in self.annotations


@dataclass(frozen=True, slots=True)
class JavaClass:
    name: str
    qualified_name: str
    type_kind: TypeKind
    methods: tuple[JavaMethod, ...]
    nested: tuple[JavaClass, ...]
    location: Location
    annotations: frozenset[str] = frozenset()
    suppressed_ids: frozenset[str] = frozenset()
    kind: NodeKind = "class_declaration"

    @property
    def children(self) -> tuple[JavaMethod | JavaClass, ...]:
        return (*self.methods, *self.nested)

    def has_annotation(self, qualified_name: str) -> bool:
        return qualified_name in self.annotations


def build_declarations(unit: CompilationUnitSyntax, index: TypeIndex) -> tuple[JavaClass, ...]:
    """
    Build resolved declaration nodes for one compilation unit.

    Types that cannot be resolved stay `None`; rules treat that as "not
    applicable" rather than as a violation.
    """

    builder = _ModelBuilder(TypeResolver(scope_for_unit(unit), index))
    return tuple(builder.type_declaration(decl, _TypeScope(), frozenset()) for decl in unit.types)


@dataclass(frozen=True, slots=True)
class _TypeScope:
    """Type variables visible at a declaration, with the first bound of each bounded one."""

    variables: frozenset[str] = frozenset()
    bounds: Mapping[str, TypeRef] = field(default_factory=dict)

    def declare(self, names: tuple[str, ...], bounds: tuple[tuple[str, TypeRef], ...]) -> _TypeScope:
        if not names:
            return self
        # An inner declaration shadows an outer type variable of the same name.
        merged = {k: v for k, v in self.bounds.items() if k not in names}
        merged.update(bounds)
        return _TypeScope(self.variables | frozenset(names), merged)


class _ModelBuilder:
    def __init__(self, resolver: TypeResolver) -> None:
        self._resolver = resolver

    def type_declaration(self, decl: TypeDeclarationSyntax, scope: _TypeScope, suppressed: frozenset[str]) -> JavaClass:
        visible = scope.declare(decl.type_parameters, decl.type_bounds)
        own_suppressed = suppressed | _suppressed_ids(decl.annotations)
        return JavaClass(
            name=decl.name,
            qualified_name=decl.qualified_name,
            type_kind=decl.kind,
            methods=tuple(self.method(m, visible, own_suppressed) for m in decl.methods),
            nested=tuple(self.type_declaration(n, visible, own_suppressed) for n in decl.nested),
            location=decl.location,
            annotations=self._annotation_names(decl.annotations),
            suppressed_ids=own_suppressed,
        )

    def method(self, method: MethodSyntax, scope: _TypeScope, suppressed: frozenset[str]) -> JavaMethod:
        visible = scope.declare(method.type_parameters, method.type_bounds)
        own_suppressed = suppressed | _suppressed_ids(method.annotations)
        return_type = None
        if method.return_type is not None:
            return_type = self._resolve(method.return_type, visible)
        return JavaMethod(
            name=method.name,
            return_type=return_type,
            parameters=tuple(self.parameter(p, visible, own_suppressed) for p in method.parameters),
            location=method.location,
            annotations=self._annotation_names(method.annotations),
            suppressed_ids=own_suppressed,
            is_constructor=method.is_constructor,
            local_types=tuple(self.type_declaration(t, visible, own_suppressed) for t in method.local_types),
        )

    def parameter(self, param: ParameterSyntax, scope: _TypeScope, suppressed: frozenset[str]) -> JavaParameter:
        return JavaParameter(
            name=param.name,
            type=self._resolve(param.type, scope) if param.type is not None else None,
            location=param.location,
            annotations=self._annotation_names(param.annotations),
            suppressed_ids=suppressed | _suppressed_ids(param.annotations),
        )

    def _resolve(self, ref: TypeRef, scope: _TypeScope) -> ResolvedType | None:
        return self._resolver.resolve(ref, type_variables=scope.variables, bounds=scope.bounds)

    def _annotation_names(self, annotations: tuple[AnnotationSyntax, ...]) -> frozenset[str]:
        names: set[str] = set()
        for annotation in annotations:
            names.update(self._resolver.annotation_names(annotation.name))
        return frozenset(names)


def _suppressed_ids(annotations: tuple[AnnotationSyntax, ...]) -> frozenset[str]:
    ids: set[str] = set()
    for annotation in annotations:
        if annotation.name.rsplit(".", 1)[-1] not in _SUPPRESS_ANNOTATIONS:
            continue
        for value in annotation.string_values:
            token = value.strip()
            if token:
                ids.add(token.upper())
    return frozenset(ids)

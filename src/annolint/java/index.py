from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from annolint.engine.types import ResolvedType
from annolint.java.syntax import CompilationUnitSyntax, TypeDeclarationSyntax, TypeKind, TypeRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionScope:
    """
    Names visible to a compilation unit, used to qualify simple type names.

    `single_imports` maps simple names to `import a.b.Name;` targets,
    `local_types` maps simple names of types declared in the same file
    (including nested ones) to their qualified names.
    """

    package: str = ""
    single_imports: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    on_demand_imports: tuple[str, ...] = ()
    local_types: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def in_package(self, simple_name: str) -> str:
        return f"{self.package}.{simple_name}" if self.package else simple_name


@dataclass(frozen=True, slots=True)
class IndexedType:
    qualified_name: str
    kind: TypeKind
    superclass: TypeRef | None
    interfaces: tuple[TypeRef, ...]
    type_variables: frozenset[str]
    scope: ResolutionScope


def scope_for_unit(unit: CompilationUnitSyntax) -> ResolutionScope:
    single: dict[str, str] = {}
    on_demand: list[str] = []
    for imp in unit.imports:
        if imp.static:
            continue
        if imp.on_demand:
            on_demand.append(imp.name)
        else:
            single.setdefault(imp.name.rsplit(".", 1)[-1], imp.name)

    local: dict[str, str] = {}
    for decl in unit.iter_types():
        if decl.name:
            local.setdefault(decl.name, decl.qualified_name)

    return ResolutionScope(
        package=unit.package,
        single_imports=MappingProxyType(single),
        on_demand_imports=tuple(on_demand),
        local_types=MappingProxyType(local),
    )


class TypeIndex:
    """
    Project-wide table of declared types, keyed by qualified name.

    Built once from every compilation unit before rules run. The declared
    types are read-only afterwards; resolved supertypes are memoised lazily,
    and concurrent fills only ever store equal values, so the index can be
    shared across worker threads.
    """

    def __init__(self, types: Mapping[str, IndexedType] | None = None) -> None:
        self._types: Mapping[str, IndexedType] = MappingProxyType(dict(types or {}))
        self._supertypes: dict[str, tuple[ResolvedType, ...]] = {}

    @classmethod
    def build(cls, units: Iterable[CompilationUnitSyntax]) -> TypeIndex:
        types: dict[str, IndexedType] = {}
        for unit in units:
            scope = scope_for_unit(unit)
            for decl, type_variables in _iter_with_type_variables(unit.types, frozenset()):
                if decl.qualified_name in types:
                    logger.debug("duplicate type declaration %s in %s (keeping first)", decl.qualified_name, unit.path)
                    continue
                types[decl.qualified_name] = IndexedType(
                    qualified_name=decl.qualified_name,
                    kind=decl.kind,
                    superclass=decl.superclass,
                    interfaces=decl.interfaces,
                    type_variables=type_variables,
                    scope=scope,
                )
        logger.debug("type index: %d declared type(s)", len(types))
        return cls(types)

    def get(self, qualified_name: str) -> IndexedType | None:
        return self._types.get(qualified_name)

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def cached_supertypes(self, qualified_name: str) -> tuple[ResolvedType, ...] | None:
        return self._supertypes.get(qualified_name)

    def remember_supertypes(self, qualified_name: str, supertypes: tuple[ResolvedType, ...]) -> None:
        self._supertypes.setdefault(qualified_name, supertypes)


def _iter_with_type_variables(
    decls: Iterable[TypeDeclarationSyntax], inherited: frozenset[str]
) -> Iterator[tuple[TypeDeclarationSyntax, frozenset[str]]]:
    for decl in decls:
        visible = inherited | frozenset(decl.type_parameters)
        yield decl, visible
        yield from _iter_with_type_variables(decl.nested, visible)
        for method in decl.methods:
            yield from _iter_with_type_variables(method.local_types, visible | frozenset(method.type_parameters))

from __future__ import annotations

from collections.abc import Mapping

from annolint.engine.types import ResolvedType
from annolint.java.index import IndexedType, ResolutionScope, TypeIndex
from annolint.java.syntax import TypeRef

PRIMITIVE_TYPES = frozenset({"void", "byte", "short", "int", "long", "char", "float", "double", "boolean"})

# Implicitly imported `java.lang` types that commonly appear in signatures.
JAVA_LANG_TYPES = frozenset(
    {
        "AutoCloseable",
        "Boolean",
        "Byte",
        "CharSequence",
        "Character",
        "Class",
        "Comparable",
        "Deprecated",
        "Double",
        "Enum",
        "Error",
        "Exception",
        "Float",
        "FunctionalInterface",
        "Integer",
        "Iterable",
        "Long",
        "Number",
        "Object",
        "Override",
        "Record",
        "Runnable",
        "RuntimeException",
        "SafeVarargs",
        "Short",
        "String",
        "StringBuilder",
        "SuppressWarnings",
        "Thread",
        "Throwable",
        "Void",
    }
)

OBJECT = ResolvedType("java.lang.Object")




class _Walk:
    """Qualified names on the current supertype path, plus a running count of cycle cuts."""

    __slots__ = ("names", "cuts")

    def __init__(self, names: frozenset[str] = frozenset(), cuts: list[int] | None = None) -> None:
        self.names = names
        self.cuts = cuts if cuts is not None else [0]

    def enter(self, name: str) -> _Walk:
        return _Walk(self.names | {name}, self.cuts)


class TypeResolver:
    """
    Resolve written types to `ResolvedType` for one compilation unit.

    Simple names follow Java scoping: type variables, primitives, types of the
    same file, single-type imports, same-package types, `java.lang`, then
    on-demand imports. Supertypes come from the project `TypeIndex`; types
    declared outside the project resolve by name only and have no supertypes.
    A type variable's supertype is its first bound, or `java.lang.Object`.
    """

    def __init__(self, scope: ResolutionScope, index: TypeIndex) -> None:
        self.scope = scope
        self.index = index

    def resolve(
        self,
        ref: TypeRef,
        *,
        type_variables: frozenset[str] = frozenset(),
        bounds: Mapping[str, TypeRef] | None = None,
    ) -> ResolvedType | None:
        return self._resolve(ref, type_variables, bounds or {}, _Walk())

    def qualify(self, name: str, *, type_variables: frozenset[str] = frozenset()) -> str | None:
        """Return the qualified name for a written (simple or scoped) type name, or None."""

        if "." not in name:
            return self._qualify_simple(name, type_variables)

        head, _, rest = name.partition(".")
        qualified_head = self._lookup(head, type_variables)
        if qualified_head is None:
            # Not a visible type: treat the written name as already fully qualified.
            return name
        return f"{qualified_head}.{rest}"

    def annotation_names(self, name: str) -> frozenset[str]:
        """
        Return every qualified name a written annotation may refer to.

        Single-type imports and same-file declarations are unambiguous; other
        simple names may come from the current package, `java.lang` or any
        on-demand import, so each is a candidate.
        """

        if "." in name:
            head, _, rest = name.partition(".")
            imported = self.scope.single_imports.get(head)
            return frozenset({name, f"{imported}.{rest}"}) if imported else frozenset({name})

        imported = self.scope.single_imports.get(name)
        if imported is not None:
            return frozenset({imported})
        local = self.scope.local_types.get(name)
        if local is not None:
            return frozenset({local})
        candidates = {self.scope.in_package(name), f"java.lang.{name}"}
        candidates.update(f"{pkg}.{name}" for pkg in self.scope.on_demand_imports)
        return frozenset(candidates)

    def render(self, ref: TypeRef, *, type_variables: frozenset[str] = frozenset()) -> str:
        """Canonical text of a written type, without walking its supertypes."""

        if ref.name == "?":
            if ref.bound and ref.arguments:
                return f"? {ref.bound} {self.render(ref.arguments[0], type_variables=type_variables)}"
            return "?"
        qualified = self.qualify(ref.name, type_variables=type_variables) or ref.name
        if ref.arguments:
            qualified += "<" + ",".join(self.render(a, type_variables=type_variables) for a in ref.arguments) + ">"
        return qualified + "[]" * ref.dimensions

    def _resolve(
        self,
        ref: TypeRef,
        type_variables: frozenset[str],
        bounds: Mapping[str, TypeRef],
        walk: _Walk,
    ) -> ResolvedType | None:
        if ref.name == "?":
            return ResolvedType(self.render(ref, type_variables=type_variables))

        qualified = self.qualify(ref.name, type_variables=type_variables)
        if qualified is None:
            return None

        text = self.render(ref, type_variables=type_variables)
        if ref.dimensions or qualified in PRIMITIVE_TYPES:
            return ResolvedType(text)
        if qualified in type_variables:
            return ResolvedType(text, self._bound_supertypes(qualified, type_variables, bounds, walk))
        return ResolvedType(text, self._supertypes(qualified, walk))

    def _bound_supertypes(
        self,
        name: str,
        type_variables: frozenset[str],
        bounds: Mapping[str, TypeRef],
        walk: _Walk,
    ) -> tuple[ResolvedType, ...]:
        bound = bounds.get(name)
        if bound is None:
            return (OBJECT,)
        marker = f"<{name}>"
        if marker in walk.names:
            # `T extends U, U extends T` does not compile; stop rather than loop.
            walk.cuts[0] += 1
            return ()
        resolved = self._resolve(bound, type_variables, bounds, walk.enter(marker))
        return (resolved,) if resolved is not None else ()

    def _supertypes(self, qualified: str, walk: _Walk) -> tuple[ResolvedType, ...]:
        entry = self.index.get(qualified)
        if entry is None:
            # External or java.lang.Object: stop here.
            return ()
        if qualified in walk.names:
            # Cyclic `extends` chain.
            walk.cuts[0] += 1
            return ()

        cached = self.index.cached_supertypes(qualified)
        if cached is not None:
            return cached

        cuts_before = walk.cuts[0]
        supertypes = _declared_supertypes(entry, self.index, walk.enter(qualified))
        if walk.cuts[0] == cuts_before:
            # No cycle was cut below this type, so the result does not depend on the path.
            self.index.remember_supertypes(qualified, supertypes)
        return supertypes

    def _qualify_simple(self, name: str, type_variables: frozenset[str]) -> str | None:
        found = self._lookup(name, type_variables)
        if found is not None:
            return found

        on_demand = self.scope.on_demand_imports
        if len(on_demand) == 1:
            return f"{on_demand[0]}.{name}"
        if not on_demand:
            # Anything else would not compile unless it lives in this package.
            return self.scope.in_package(name)
        return None

    def _lookup(self, name: str, type_variables: frozenset[str]) -> str | None:
        if name in type_variables or name in PRIMITIVE_TYPES:
            return name
        local = self.scope.local_types.get(name)
        if local is not None:
            return local
        imported = self.scope.single_imports.get(name)
        if imported is not None:
            return imported
        same_package = self.scope.in_package(name)
        if same_package in self.index:
            return same_package
        if name in JAVA_LANG_TYPES:
            return f"java.lang.{name}"
        for pkg in self.scope.on_demand_imports:
            candidate = f"{pkg}.{name}"
            if candidate in self.index:
                return candidate
        return None


def _declared_supertypes(entry: IndexedType, index: TypeIndex, walk: _Walk) -> tuple[ResolvedType, ...]:
    resolver = TypeResolver(entry.scope, index)
    tv = entry.type_variables

    first: ResolvedType | None
    if entry.kind == "enum":
        first = ResolvedType(f"java.lang.Enum<{entry.qualified_name}>")
    elif entry.kind == "record":
        first = ResolvedType("java.lang.Record")
    elif entry.kind == "class" and entry.superclass is not None:
        first = resolver._resolve(entry.superclass, tv, {}, walk)
    else:
        first = None

    interfaces: list[ResolvedType] = []
    for ref in entry.interfaces:
        resolved = resolver._resolve(ref, tv, {}, walk)
        if resolved is not None:
            interfaces.append(resolved)

    if entry.kind == "interface" or entry.kind == "annotation":
        return tuple(interfaces) if interfaces else (OBJECT,)
    return (first or OBJECT, *interfaces)

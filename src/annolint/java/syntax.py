from __future__ import annotations

import itertools
from collections.abc import Iterator
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from annolint.engine.types import Location

TypeKind = Literal["class", "interface", "enum", "record", "annotation"]

_TYPE_DECLARATIONS: dict[str, TypeKind] = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}
_METHOD_DECLARATIONS = {"method_declaration", "constructor_declaration", "compact_constructor_declaration"}
_PRIMITIVE_TYPE_NODES = {"void_type", "integral_type", "floating_point_type", "boolean_type"}
_NAME_TYPE_NODES = {"type_identifier", "scoped_type_identifier", "identifier", "scoped_identifier"}
_ANNOTATION_NODES = {"marker_annotation", "annotation"}


@dataclass(frozen=True, slots=True)
class TypeRef:
    """
    A type exactly as written in source, before any name resolution.

    Wildcards use `name="?"` with the bound (if any) as the only argument and
    `bound` set to "extends" or "super".
    """

    name: str
    arguments: tuple[TypeRef, ...] = ()
    dimensions: int = 0
    bound: str | None = None


@dataclass(frozen=True, slots=True)
class AnnotationSyntax:
    name: str
    string_values: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ImportSyntax:
    name: str
    on_demand: bool = False
    static: bool = False


@dataclass(frozen=True, slots=True)
class ParameterSyntax:
    name: str
    type: TypeRef | None
    annotations: tuple[AnnotationSyntax, ...]
    location: Location


@dataclass(frozen=True, slots=True)
class MethodSyntax:
    name: str
    return_type: TypeRef | None  # None for constructors
    type_parameters: tuple[str, ...]
    parameters: tuple[ParameterSyntax, ...]
    annotations: tuple[AnnotationSyntax, ...]
    location: Location
    is_constructor: bool = False
    # Local and anonymous classes declared in the body.
    local_types: tuple[TypeDeclarationSyntax, ...] = ()
    # First declared bound of each bounded type parameter.
    type_bounds: tuple[tuple[str, TypeRef], ...] = ()


@dataclass(frozen=True, slots=True)
class TypeDeclarationSyntax:
    """
    A class-like declaration.

    Anonymous classes have an empty `name`. Local and anonymous classes get
    `$`-numbered qualified names (`app.Repo$1`, `app.Repo$2Local`) so they never
    collide with member types.
    """

    name: str
    qualified_name: str
    kind: TypeKind
    type_parameters: tuple[str, ...]
    superclass: TypeRef | None
    interfaces: tuple[TypeRef, ...]
    annotations: tuple[AnnotationSyntax, ...]
    methods: tuple[MethodSyntax, ...]
    nested: tuple[TypeDeclarationSyntax, ...]
    location: Location
    type_bounds: tuple[tuple[str, TypeRef], ...] = ()


@dataclass(frozen=True, slots=True)
class CompilationUnitSyntax:
    path: Path
    package: str
    imports: tuple[ImportSyntax, ...]
    types: tuple[TypeDeclarationSyntax, ...]

    def iter_types(self) -> Iterator[TypeDeclarationSyntax]:
        stack = list(reversed(self.types))
        while stack:
            decl = stack.pop()
            yield decl
            local = [t for m in decl.methods for t in m.local_types]
            stack.extend(reversed((*decl.nested, *local)))


def extract_compilation_unit(tree: Any, source: bytes, *, path: Path) -> CompilationUnitSyntax:
    """
    Summarize a tree-sitter Java tree into immutable declaration records.

    The summary keeps only what rules and type resolution need: the package,
    imports, and each type declaration with its supertypes, annotations and
    methods. ERROR nodes are skipped, so a syntax error only hides the broken
    declaration.
    """

    extractor = _Extractor(source, path)
    return extractor.compilation_unit(tree.root_node)


class _Extractor:
    def __init__(self, source: bytes, path: Path) -> None:
        self._source = source
        self._path = path

    def compilation_unit(self, root: Any) -> CompilationUnitSyntax:
        package = ""
        imports: list[ImportSyntax] = []
        types: list[TypeDeclarationSyntax] = []

        for child in root.named_children:
            if child.type == "package_declaration":
                name_node = _first_named(child, {"scoped_identifier", "identifier"})
                if name_node is not None:
                    package = self._compact(name_node)
            elif child.type == "import_declaration":
                imp = self._import(child)
                if imp is not None:
                    imports.append(imp)
            elif child.type in _TYPE_DECLARATIONS:
                types.append(self._type_declaration(child, outer=package))

        return CompilationUnitSyntax(path=self._path, package=package, imports=tuple(imports), types=tuple(types))

    def _import(self, node: Any) -> ImportSyntax | None:
        name_node = _first_named(node, {"scoped_identifier", "identifier"})
        if name_node is None:
            return None
        child_types = {c.type for c in node.children}
        return ImportSyntax(
            name=self._compact(name_node),
            on_demand="asterisk" in child_types,
            static="static" in child_types,
        )

    def _type_declaration(self, node: Any, *, outer: str, local_prefix: str | None = None) -> TypeDeclarationSyntax:
        kind = _TYPE_DECLARATIONS[node.type]
        name_node = node.child_by_field_name("name")
        name = self._text(name_node) if name_node is not None else ""
        if local_prefix is not None:
            qualified_name = f"{local_prefix}{name}"
        else:
            qualified_name = f"{outer}.{name}" if outer else name

        superclass: TypeRef | None = None
        interfaces: list[TypeRef] = []
        type_parameters: tuple[str, ...] = ()
        type_bounds: tuple[tuple[str, TypeRef], ...] = ()
        annotations: tuple[AnnotationSyntax, ...] = ()
        for child in node.children:
            if child.type == "modifiers":
                annotations = self._annotations(child)
            elif child.type == "type_parameters":
                type_parameters, type_bounds = self._type_parameters(child)
            elif child.type == "superclass":
                type_nodes = [c for c in child.named_children if c.type not in _ANNOTATION_NODES]
                if type_nodes:
                    superclass = self._type_ref(type_nodes[-1])
            elif child.type in {"super_interfaces", "extends_interfaces"}:
                interfaces.extend(self._type_list(child))

        body = node.child_by_field_name("body")
        methods, nested = self._members(body, owner=qualified_name, owner_name=name)

        return TypeDeclarationSyntax(
            name=name,
            qualified_name=qualified_name,
            kind=kind,
            type_parameters=type_parameters,
            type_bounds=type_bounds,
            superclass=superclass,
            interfaces=tuple(interfaces),
            annotations=annotations,
            methods=methods,
            nested=nested,
            location=self._location(node),
        )

    def _members(
        self, body: Any | None, *, owner: str, owner_name: str
    ) -> tuple[tuple[MethodSyntax, ...], tuple[TypeDeclarationSyntax, ...]]:
        methods: list[MethodSyntax] = []
        nested: list[TypeDeclarationSyntax] = []
        if body is None:
            return (), ()

        counter = itertools.count(1)
        for member in _iter_members(body):
            if member.type in _METHOD_DECLARATIONS:
                methods.append(self._method(member, owner=owner, counter=counter))
            elif member.type in _TYPE_DECLARATIONS:
                nested.append(self._type_declaration(member, outer=owner))
            elif member.type == "enum_constant":
                args = member.child_by_field_name("arguments")
                if args is not None:
                    nested.extend(self._local_types(args, owner=owner, counter=counter))
                constant_body = member.child_by_field_name("body")
                if constant_body is not None:
                    nested.append(
                        self._anonymous_class(
                            member,
                            constant_body,
                            qualified_name=f"{owner}${next(counter)}",
                            base=TypeRef(name=owner_name),
                        )
                    )
            else:
                # Fields and initializer blocks.
                nested.extend(self._local_types(member, owner=owner, counter=counter))
        return tuple(methods), tuple(nested)

    def _local_types(self, node: Any, *, owner: str, counter: Iterator[int]) -> list[TypeDeclarationSyntax]:
        """Collect local and anonymous classes below `node`, without entering their bodies."""

        found: list[TypeDeclarationSyntax] = []
        stack = list(reversed(node.named_children))
        while stack:
            child = stack.pop()
            if child.type in _TYPE_DECLARATIONS:
                found.append(self._type_declaration(child, outer=owner, local_prefix=f"{owner}${next(counter)}"))
                continue
            if child.type == "object_creation_expression":
                class_body = _first_named(child, {"class_body"})
                if class_body is not None:
                    # Argument expressions are evaluated outside the anonymous class.
                    args = child.child_by_field_name("arguments")
                    if args is not None:
                        found.extend(self._local_types(args, owner=owner, counter=counter))
                    type_node = child.child_by_field_name("type")
                    found.append(
                        self._anonymous_class(
                            child,
                            class_body,
                            qualified_name=f"{owner}${next(counter)}",
                            base=self._type_ref(type_node) if type_node is not None else None,
                        )
                    )
                    continue
            stack.extend(reversed(child.named_children))
        return found

    def _anonymous_class(
        self, node: Any, body: Any, *, qualified_name: str, base: TypeRef | None
    ) -> TypeDeclarationSyntax:
        methods, nested = self._members(body, owner=qualified_name, owner_name="")
        return TypeDeclarationSyntax(
            name="",
            qualified_name=qualified_name,
            kind="class",
            type_parameters=(),
            superclass=base,
            interfaces=(),
            annotations=(),
            methods=methods,
            nested=nested,
            location=self._location(node),
        )

    def _method(self, node: Any, *, owner: str, counter: Iterator[int]) -> MethodSyntax:
        is_constructor = node.type != "method_declaration"
        name_node = node.child_by_field_name("name")
        return_type: TypeRef | None = None
        if not is_constructor:
            type_node = node.child_by_field_name("type")
            if type_node is not None:
                return_type = self._type_ref(type_node)

        annotations: tuple[AnnotationSyntax, ...] = ()
        type_parameters: tuple[str, ...] = ()
        type_bounds: tuple[tuple[str, TypeRef], ...] = ()
        for child in node.children:
            if child.type == "modifiers":
                annotations = self._annotations(child)
            elif child.type == "type_parameters":
                type_parameters, type_bounds = self._type_parameters(child)

        parameters: list[ParameterSyntax] = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for p in params_node.named_children:
                param = self._parameter(p)
                if param is not None:
                    parameters.append(param)

        local_types: list[TypeDeclarationSyntax] = []
        body = node.child_by_field_name("body")
        if body is not None:
            local_types = self._local_types(body, owner=owner, counter=counter)

        return MethodSyntax(
            name=self._text(name_node) if name_node is not None else "",
            return_type=return_type,
            type_parameters=type_parameters,
            parameters=tuple(parameters),
            annotations=annotations,
            location=self._location(node),
            is_constructor=is_constructor,
            local_types=tuple(local_types),
            type_bounds=type_bounds,
        )

    def _parameter(self, node: Any) -> ParameterSyntax | None:
        annotations: tuple[AnnotationSyntax, ...] = ()
        modifiers = _first_named(node, {"modifiers"})
        if modifiers is not None:
            annotations = self._annotations(modifiers)

        if node.type == "formal_parameter":
            type_node = node.child_by_field_name("type")
            name_node = node.child_by_field_name("name")
            type_ref = self._type_ref(type_node) if type_node is not None else None
            dims = node.child_by_field_name("dimensions")
            if type_ref is not None and dims is not None:
                type_ref = replace(type_ref, dimensions=type_ref.dimensions + self._text(dims).count("["))
        elif node.type == "spread_parameter":
            type_nodes = [c for c in node.named_children if c.type not in {"modifiers", "variable_declarator"}]
            type_ref = self._type_ref(type_nodes[0]) if type_nodes else None
            if type_ref is not None:
                type_ref = replace(type_ref, dimensions=type_ref.dimensions + 1)
            declarator = _first_named(node, {"variable_declarator"})
            name_node = declarator.child_by_field_name("name") if declarator is not None else None
        else:
            return None

        return ParameterSyntax(
            name=self._text(name_node) if name_node is not None else "",
            type=type_ref,
            annotations=annotations,
            location=self._location(node),
        )

    def _annotations(self, modifiers: Any) -> tuple[AnnotationSyntax, ...]:
        out: list[AnnotationSyntax] = []
        for child in modifiers.named_children:
            if child.type not in _ANNOTATION_NODES:
                continue
            name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            values: list[str] = []
            args = child.child_by_field_name("arguments")
            if args is not None:
                for n in _iter_nodes(args):
                    if n.type == "string_literal":
                        values.append(self._text(n).strip('"'))
            out.append(AnnotationSyntax(name=self._compact(name_node), string_values=tuple(values)))
        return tuple(out)

    def _type_parameters(self, node: Any) -> tuple[tuple[str, ...], tuple[tuple[str, TypeRef], ...]]:
        names: list[str] = []
        bounds: list[tuple[str, TypeRef]] = []
        for param in node.named_children:
            if param.type != "type_parameter":
                continue
            ident = _first_named(param, {"type_identifier", "identifier"})
            if ident is None:
                continue
            name = self._text(ident)
            names.append(name)
            type_bound = _first_named(param, {"type_bound"})
            if type_bound is not None and type_bound.named_children:
                bound = self._type_ref(type_bound.named_children[0])
                if bound is not None:
                    bounds.append((name, bound))
        return tuple(names), tuple(bounds)

    def _type_list(self, node: Any) -> list[TypeRef]:
        type_list = _first_named(node, {"type_list"})
        if type_list is None:
            return []
        refs: list[TypeRef] = []
        for child in type_list.named_children:
            ref = self._type_ref(child)
            if ref is not None:
                refs.append(ref)
        return refs

    def _type_ref(self, node: Any) -> TypeRef | None:
        t = node.type
        if t in _PRIMITIVE_TYPE_NODES or t in _NAME_TYPE_NODES:
            return TypeRef(name=self._compact(node))
        if t == "generic_type":
            base = _first_named(node, {"type_identifier", "scoped_type_identifier"})
            if base is None:
                return None
            arguments: list[TypeRef] = []
            type_args = _first_named(node, {"type_arguments"})
            if type_args is not None:
                for arg in type_args.named_children:
                    ref = self._type_ref(arg)
                    if ref is not None:
                        arguments.append(ref)
            return TypeRef(name=self._compact(base), arguments=tuple(arguments))
        if t == "array_type":
            element = node.child_by_field_name("element")
            dims = node.child_by_field_name("dimensions")
            inner = self._type_ref(element) if element is not None else None
            if inner is None:
                return None
            count = self._text(dims).count("[") if dims is not None else 1
            return replace(inner, dimensions=inner.dimensions + count)
        if t == "annotated_type":
            type_nodes = [c for c in node.named_children if c.type not in _ANNOTATION_NODES]
            return self._type_ref(type_nodes[-1]) if type_nodes else None
        if t == "wildcard":
            bound: str | None = None
            for child in node.children:
                if child.type in {"extends", "super"}:
                    bound = child.type
            type_nodes = [c for c in node.named_children if c.type not in _ANNOTATION_NODES and c.type != "super"]
            if bound is None or not type_nodes:
                return TypeRef(name="?")
            bound_ref = self._type_ref(type_nodes[-1])
            return TypeRef(name="?", arguments=(bound_ref,) if bound_ref is not None else (), bound=bound)
        return None

    def _text(self, node: Any) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _compact(self, node: Any) -> str:
        return "".join(self._text(node).split())

    def _location(self, node: Any) -> Location:
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        return Location(
            path=self._path,
            start_line=start_row + 1,
            start_col=start_col + 1,
            end_line=end_row + 1,
            end_col=end_col + 1,
        )


def _iter_members(body: Any) -> Iterator[Any]:
    for child in body.named_children:
        if child.type == "enum_body_declarations":
            yield from child.named_children
        else:
            yield child


def _iter_nodes(node: Any) -> Iterator[Any]:
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(getattr(n, "children", [])))


def _first_named(node: Any, types: set[str]) -> Any | None:
    for child in node.named_children:
        if child.type in types:
            return child
    return None

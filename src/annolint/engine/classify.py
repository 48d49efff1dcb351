from __future__ import annotations

from collections.abc import Collection
from typing import Protocol

from annolint.engine.types import ResolvedType


class _Annotated(Protocol):
    def has_annotation(self, qualified_name: str) -> bool: ...


def strip_generics(class_name: str) -> str:
    """
    Convert `"io.reactivex.Observable<Object>"` to `"io.reactivex.Observable"`.

    Names without generic arguments are returned unchanged.
    """

    idx = class_name.find("<")
    return class_name if idx == -1 else class_name[:idx]


def is_of_interesting_type(resolved_type: ResolvedType, targets: Collection[str]) -> bool:
    """
    Return True if `resolved_type` (or one of its superclasses) is in `targets`.

    Only the first supertype is followed at each level. Class types put their
    superclass there, so this walks the linear superclass chain; interfaces a
    type implements directly are not considered.
    """

    if strip_generics(resolved_type.canonical_text) in targets:
        return True

    supertypes = resolved_type.supertypes
    while supertypes:
        superclass = supertypes[0]
        if strip_generics(superclass.canonical_text) in targets:
            return True
        supertypes = superclass.supertypes

    return False


def has_annotation(declaration: _Annotated, qualified_name: str) -> bool:
    # Exact qualified-name match; no patterns, no inheritance across overrides.
    return declaration.has_annotation(qualified_name)

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

WILDCARD = "ALL"


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Rule suppressions extracted from comment directives in a Java file.

    Supported directives (case-insensitive, usually inside `//` or `/* */`):
    - `annolint: disable-file=R01,D01` (suppresses violations anywhere in the file)
    - `annolint: disable=R01` (suppresses violations reported on that same line)
    - `annolint: disable-next-line=D01` (suppresses violations on the next line)

    Rules may be named by id (`R01`) or by any of their aliases.
    """

    disabled_in_file: frozenset[str]
    disabled_on_line: Mapping[int, frozenset[str]]

    def is_suppressed(self, rule_id: str, *, line: int | None, aliases: Iterable[str] = ()) -> bool:
        names = {rule_id.upper(), *(a.upper() for a in aliases), WILDCARD}
        if not names.isdisjoint(self.disabled_in_file):
            return True
        if line is None:
            return False
        disabled = self.disabled_on_line.get(line)
        return bool(disabled) and not names.isdisjoint(disabled)


NO_SUPPRESSIONS = Suppressions(disabled_in_file=frozenset(), disabled_on_line=MappingProxyType({}))

_DIRECTIVE_RE = re.compile(
    r"annolint:\s*(?P<kind>disable[-_]?file|disable[-_]next[-_]line|disable)\s*=\s*(?P<ids>[a-z0-9_,\s]+)",
    re.IGNORECASE,
)


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}

    for idx, line in enumerate(lines, start=1):
        if "annolint" not in line.lower():
            continue
        for match in _DIRECTIVE_RE.finditer(line):
            ids = _parse_ids(match.group("ids"))
            kind = match.group("kind").lower().replace("_", "-")
            if kind.startswith("disable-file") or kind == "disablefile":
                disabled_in_file.update(ids)
            elif kind == "disable-next-line":
                disabled_on_line.setdefault(idx + 1, set()).update(ids)
            else:
                disabled_on_line.setdefault(idx, set()).update(ids)

    frozen = {line: frozenset(ids) for line, ids in disabled_on_line.items()}
    return Suppressions(disabled_in_file=frozenset(disabled_in_file), disabled_on_line=MappingProxyType(frozen))


def _parse_ids(value: str) -> set[str]:
    return {token.upper() for token in re.split(r"[,\s]+", value.strip()) if token}

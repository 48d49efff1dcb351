from __future__ import annotations

import fnmatch
import re
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, cast

from annolint.engine.types import Severity


class ConfigError(ValueError):
    """Raised when an annolint configuration table is invalid."""


RuleId = str
RuleGroup = str
FailOn = Literal["error", "warn", "info", "never"]

_RULE_ID_RE = re.compile(r"^[A-Z][0-9]{2,}$")
_SEVERITIES = {"info", "warn", "error", "ignore"}
_FAIL_ON = {"info", "warn", "error", "never"}

DEFAULT_FAIL_ON: FailOn = "error"

# Keep in sync with `annolint.rules.registry.builtin_rules()`.
DEFAULT_RULE_GROUPS: dict[RuleGroup, tuple[RuleId, ...]] = {
    "rx": ("R01",),
    "dagger": ("D01",),
}
DEFAULT_RULE_GROUPS["all"] = tuple(rule_id for group in ("rx", "dagger") for rule_id in DEFAULT_RULE_GROUPS[group])


@dataclass(frozen=True, slots=True)
class RuleOverride:
    severity: Severity | None = None


@dataclass(frozen=True, slots=True)
class RulesConfig:
    enable: str | tuple[str, ...] = "all"
    disable: tuple[str, ...] = ()
    overrides: Mapping[RuleId, RuleOverride] = field(default_factory=lambda: MappingProxyType({}))
    severity_overrides: Mapping[RuleId, Severity] = field(default_factory=lambda: MappingProxyType({}))

    def severity_for(self, rule_id: RuleId) -> Severity | None:
        override = self.overrides.get(rule_id)
        if override is not None and override.severity is not None:
            return override.severity
        return self.severity_overrides.get(rule_id)


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AnnolintConfig:
    rules: RulesConfig = field(default_factory=RulesConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    plugins: tuple[str, ...] = ()
    fail_on: FailOn = DEFAULT_FAIL_ON


def load_config(project_dir: Path | str = ".") -> AnnolintConfig:
    """
    Load annolint configuration from `pyproject.toml` within `project_dir`.

    If no file / no `[tool.annolint]` table exists, returns defaults.
    """

    pyproject_path = Path(project_dir) / "pyproject.toml"
    if not pyproject_path.exists():
        return AnnolintConfig()

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject_path}: {exc}") from exc

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return AnnolintConfig()

    table = tool_table.get("annolint", {})
    if not isinstance(table, dict) or not table:
        return AnnolintConfig()

    return parse_config_table(table)


def parse_config_table(table: Mapping[str, Any]) -> AnnolintConfig:
    fail_on_raw = table.get("fail-on", table.get("fail_on", DEFAULT_FAIL_ON))
    if not isinstance(fail_on_raw, str) or _normalize_severity_word(fail_on_raw) not in _FAIL_ON:
        raise ConfigError("`tool.annolint.fail-on` must be one of: error, warn, info, never.")
    fail_on = cast(FailOn, _normalize_severity_word(fail_on_raw))

    return AnnolintConfig(
        rules=_parse_rules_config(table.get("rules", {})),
        ignore=_parse_ignore_config(table.get("ignore", {})),
        plugins=_validate_str_list(table.get("plugins", []), field_name="tool.annolint.plugins"),
        fail_on=fail_on,
    )


def _normalize_severity_word(value: str) -> str:
    normalized = value.strip().lower()
    return "warn" if normalized == "warning" else normalized


def _normalize_group(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def _normalize_rule_id(value: str) -> str:
    # Rule IDs are case-insensitive in UX, but canonicalized internally.
    return value.strip().upper()


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _validate_severity(value: Any, *, field_name: str) -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    normalized = _normalize_severity_word(value)
    if normalized not in _SEVERITIES:
        raise ConfigError(f"`{field_name}` must be one of: info, warn, error, ignore.")
    return cast(Severity, normalized)


def _parse_rules_config(value: Any) -> RulesConfig:
    if value is None:
        return RulesConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.annolint.rules` must be a table.")

    enable: str | tuple[str, ...]
    enable_raw = value.get("enable", "all")
    if isinstance(enable_raw, str):
        tokens = _split_rule_tokens(enable_raw)
        enable = tokens if len(tokens) > 1 else (tokens[0] if tokens else "all")
    elif isinstance(enable_raw, list) and all(isinstance(v, str) for v in enable_raw):
        enable = _split_rule_list(enable_raw)
    else:
        raise ConfigError("`tool.annolint.rules.enable` must be a string or a list of strings.")

    disable = _split_rule_list(_validate_str_list(value.get("disable", []), field_name="tool.annolint.rules.disable"))

    _validate_rule_tokens((enable,) if isinstance(enable, str) else enable, field_name="tool.annolint.rules.enable")
    _validate_rule_tokens(disable, field_name="tool.annolint.rules.disable")

    severity_overrides: dict[RuleId, Severity] = {}
    sev_overrides_raw = value.get("severity_overrides", value.get("severity-overrides"))
    if sev_overrides_raw is not None:
        if not isinstance(sev_overrides_raw, dict):
            raise ConfigError("`tool.annolint.rules.severity_overrides` must be a table.")
        for raw_rule_id, raw_severity in sev_overrides_raw.items():
            rule_id = _normalize_rule_id(str(raw_rule_id))
            if not _RULE_ID_RE.match(rule_id):
                raise ConfigError(
                    f"`tool.annolint.rules.severity_overrides.{raw_rule_id}` is invalid; expected a rule id like R01."
                )
            severity_overrides[rule_id] = _validate_severity(
                raw_severity, field_name=f"tool.annolint.rules.severity_overrides.{raw_rule_id}"
            )

    overrides: dict[RuleId, RuleOverride] = {}
    for key, sub in value.items():
        if key in {"enable", "disable", "severity_overrides", "severity-overrides"} or not isinstance(sub, dict):
            continue
        rule_id = _normalize_rule_id(str(key))
        if not _RULE_ID_RE.match(rule_id):
            raise ConfigError(f"`tool.annolint.rules.{key}` is invalid; expected a rule id like R01.")
        severity = sub.get("severity")
        overrides[rule_id] = RuleOverride(
            severity=_validate_severity(severity, field_name=f"tool.annolint.rules.{key}.severity")
            if severity is not None
            else None
        )

    return RulesConfig(
        enable=enable,
        disable=disable,
        overrides=MappingProxyType(overrides),
        severity_overrides=MappingProxyType(severity_overrides),
    )


def _parse_ignore_config(value: Any) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.annolint.ignore` must be a table.")
    return IgnoreConfig(paths=_validate_str_list(value.get("paths", []), field_name="tool.annolint.ignore.paths"))


def _split_rule_tokens(value: str) -> tuple[str, ...]:
    return tuple(token.strip() for token in value.replace(";", ",").split(",") if token.strip())


def _split_rule_list(values: Iterable[str]) -> tuple[str, ...]:
    parts: list[str] = []
    for raw in values:
        parts.extend(_split_rule_tokens(raw))
    return tuple(parts)


def _validate_rule_tokens(tokens: Iterable[str], *, field_name: str) -> None:
    for token in tokens:
        stripped = token.strip()
        if not stripped or _normalize_group(stripped) in DEFAULT_RULE_GROUPS:
            continue
        if _RULE_ID_RE.match(_normalize_rule_id(stripped)):
            continue
        groups = ", ".join(sorted(DEFAULT_RULE_GROUPS))
        raise ConfigError(
            f"`{field_name}` contains unknown rule group or invalid rule id: {token!r}. "
            f"Valid groups: {groups}. Valid ids look like R01/D01."
        )


def compute_enabled_rule_ids(
    config: AnnolintConfig,
    *,
    available_rule_ids: Iterable[RuleId] | None = None,
) -> set[RuleId]:
    """
    Resolve the final enabled rules set from `rules.enable` + `rules.disable`.

    - `enable = "all"` enables every available rule (plugins included).
    - `enable = ["rx", "D01"]` enables group(s) and/or explicit IDs.
    - `disable = ["D01"]` disables specific IDs (or groups).
    - Rules whose effective severity is `ignore` are never enabled.

    If `available_rule_ids` is provided, the result is intersected with it.
    """

    available: set[RuleId] | None = set(available_rule_ids) if available_rule_ids is not None else None
    everything = available if available is not None else set(DEFAULT_RULE_GROUPS["all"])

    enable_spec = config.rules.enable
    enable_tokens = (enable_spec,) if isinstance(enable_spec, str) else enable_spec

    enabled: set[RuleId] = set()
    for token in enable_tokens:
        enabled.update(_expand_token(token, everything))
    for token in config.rules.disable:
        enabled.difference_update(_expand_token(token, everything))

    enabled = {rule_id for rule_id in enabled if config.rules.severity_for(rule_id) != "ignore"}
    if available is not None:
        enabled.intersection_update(available)
    return enabled


def _expand_token(token: str, everything: set[RuleId]) -> set[RuleId]:
    group = _normalize_group(token)
    if group == "all":
        return set(everything)
    if group in DEFAULT_RULE_GROUPS:
        return set(DEFAULT_RULE_GROUPS[group])
    return {_normalize_rule_id(token)}


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style relative path from `project_root`.

    Supported patterns:
    - Directory prefixes: "build/" matches "build/..." anywhere under root.
    - Globs without slashes: "*Generated.java" matches basenames.
    - Globs with slashes: "app/src/**/generated/*.java" matches full relative paths.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        # If the path isn't under root (or can't be resolved), don't ignore it implicitly.
        return False

    rel_posix = relative.as_posix()
    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/").removeprefix("./")
        if not pattern:
            continue
        if pattern.endswith("/"):
            prefix = pattern.rstrip("/")
            if rel_posix == prefix or rel_posix.startswith(pattern) or f"/{pattern}" in f"/{rel_posix}":
                return True
            continue
        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
            continue
        if fnmatch.fnmatch(relative.name, pattern):
            return True
    return False

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from annolint.rules.base import BaseRule

logger = logging.getLogger(__name__)


class PluginLoadError(RuntimeError):
    """Raised when a configured plugin cannot be imported or doesn't expose rules."""


def load_plugin_rules(plugin_specs: Iterable[str]) -> list[BaseRule]:
    """
    Import each `module` or `module:attr` spec and collect the rules it exports.

    A module exports rules through `annolint_rules()` or `RULES`; an explicit
    attribute may be a rule list or a callable returning one.
    """

    rules: list[BaseRule] = []
    for raw_spec in plugin_specs:
        spec = raw_spec.strip()
        if not spec:
            continue
        loaded = _load_one(spec)
        logger.debug("plugin %s: %d rule(s)", spec, len(loaded))
        rules.extend(loaded)
    return rules


def _load_one(spec: str) -> list[BaseRule]:
    module_name, sep, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"Failed to import plugin module {module_name!r}: {exc}") from exc

    obj: Any = module
    if sep:
        try:
            obj = getattr(module, attr)
        except AttributeError as exc:
            raise PluginLoadError(f"Plugin module {module_name!r} has no attribute {attr!r}") from exc
    return list(_extract_rules(obj))


def _extract_rules(obj: Any) -> Iterable[BaseRule]:
    if isinstance(obj, ModuleType):
        if hasattr(obj, "annolint_rules"):
            return _extract_rules(obj.annolint_rules)
        if hasattr(obj, "RULES"):
            return _extract_rules(obj.RULES)
        raise PluginLoadError("Plugin module must define `annolint_rules()` or `RULES`.")

    if isinstance(obj, BaseRule):
        return [obj]

    if callable(obj):
        return _extract_rules(obj())

    if isinstance(obj, list | tuple):
        out: list[BaseRule] = []
        for item in obj:
            if not isinstance(item, BaseRule):
                raise PluginLoadError(f"Plugin rules must be BaseRule instances, got: {type(item).__name__}")
            out.append(item)
        return out

    raise PluginLoadError(f"Unsupported plugin export type: {type(obj).__name__}")

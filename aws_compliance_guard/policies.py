"""Policy registry loading, validation and atomic replacement."""
from __future__ import annotations

import json
import logging
import threading
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import yaml

from .errors import RegistryError
from .models import SEVERITIES, PolicyRule
from .remediations import REMEDIATION_ACTIONS

logger = logging.getLogger(__name__)

DEFAULT_RULES_RESOURCE = "default_rules.yaml"

RegistrySource = Union[str, Path, Mapping[str, Any]]


class PolicyRegistry(Mapping[str, PolicyRule]):
    """Immutable snapshot mapping rule ids to :class:`PolicyRule` objects."""

    def __init__(self, rules: Iterable[PolicyRule]) -> None:
        table: Dict[str, PolicyRule] = {}
        for rule in rules:
            if rule.id in table:
                raise RegistryError(f"Duplicate policy rule id '{rule.id}'")
            table[rule.id] = rule
        self._rules = MappingProxyType(table)

    def __getitem__(self, rule_id: str) -> PolicyRule:
        return self._rules[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"PolicyRegistry({len(self)} rules)"

    def auto_remediable_rules(self) -> List[PolicyRule]:
        return [rule for rule in self._rules.values() if rule.auto_remediable]


def _parse_rule(raw: Any, position: int) -> PolicyRule:
    if not isinstance(raw, Mapping):
        raise RegistryError(f"Rule #{position} must be a mapping, got {type(raw).__name__}")

    rule_id = str(raw.get("id") or "").strip()
    if not rule_id:
        raise RegistryError(f"Rule #{position} is missing an 'id'")

    severity = str(raw.get("severity", "")).strip().upper()
    if severity not in SEVERITIES:
        valid = ", ".join(SEVERITIES)
        raise RegistryError(
            f"Rule '{rule_id}' has unknown severity '{raw.get('severity')}'. Valid severities: {valid}"
        )

    eligible = raw.get("auto_remediable", raw.get("autoRemediable", False))
    if not isinstance(eligible, bool):
        raise RegistryError(f"Rule '{rule_id}' must declare auto_remediable as a boolean")

    return PolicyRule(
        id=rule_id,
        description=str(raw.get("description", "")),
        severity=severity,  # type: ignore[arg-type]
        auto_remediable=eligible,
    )


def build_registry(
    document: Mapping[str, Any],
    *,
    actions: Optional[Mapping[str, Any]] = None,
) -> PolicyRegistry:
    """Build and validate a registry from a parsed ``{"rules": [...]}`` document.

    Every auto-remediable rule must have a remediation action in *actions*
    (defaults to :data:`~aws_compliance_guard.remediations.REMEDIATION_ACTIONS`).
    """

    raw_rules = document.get("rules")
    if not isinstance(raw_rules, list):
        raise RegistryError("Policy document must contain a 'rules' list")

    registry = PolicyRegistry(_parse_rule(raw, idx) for idx, raw in enumerate(raw_rules, start=1))

    action_map = REMEDIATION_ACTIONS if actions is None else actions
    unmapped = sorted(
        rule.id
        for rule in registry.auto_remediable_rules()
        if rule.id not in action_map and rule.id.lower() not in action_map
    )
    if unmapped:
        raise RegistryError(
            "Auto-remediable rule(s) without a remediation action: " + ", ".join(unmapped)
        )
    return registry


def _read_document(path: Path) -> Mapping[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RegistryError(f"Unable to read policy registry {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RegistryError(f"Unable to parse policy registry {path}: {exc}") from exc

    if not isinstance(document, Mapping):
        raise RegistryError(f"Policy registry {path} must contain a mapping at the top level")
    return document


def load_registry(
    source: RegistrySource,
    *,
    actions: Optional[Mapping[str, Any]] = None,
) -> PolicyRegistry:
    """Load a registry from a YAML/JSON file path or an already parsed mapping."""

    if isinstance(source, Mapping):
        document = source
    else:
        document = _read_document(Path(source))
    registry = build_registry(document, actions=actions)
    logger.info(
        "Loaded %d policy rules (%d auto-remediable)",
        len(registry),
        len(registry.auto_remediable_rules()),
    )
    return registry


def load_default_registry() -> PolicyRegistry:
    """Return the policy catalog bundled with the package."""

    text = resources.files("aws_compliance_guard.data").joinpath(DEFAULT_RULES_RESOURCE).read_text(
        encoding="utf-8"
    )
    return load_registry(yaml.safe_load(text))


class RegistryHolder:
    """Holds the active registry snapshot and swaps it atomically on reload."""

    def __init__(
        self,
        registry: PolicyRegistry,
        *,
        source: Optional[RegistrySource] = None,
    ) -> None:
        self._registry = registry
        self._source = source
        self._reload_lock = threading.Lock()

    @property
    def current(self) -> PolicyRegistry:
        return self._registry

    def swap(self, registry: PolicyRegistry) -> PolicyRegistry:
        """Install *registry* and return the snapshot it replaced."""

        with self._reload_lock:
            previous, self._registry = self._registry, registry
        return previous

    def reload(self) -> PolicyRegistry:
        """Re-read the configured source; on failure the current snapshot stays active."""

        if self._source is None:
            registry = load_default_registry()
        else:
            registry = load_registry(self._source)
        self.swap(registry)
        return registry


__all__ = [
    "PolicyRegistry",
    "RegistryHolder",
    "build_registry",
    "load_default_registry",
    "load_registry",
]

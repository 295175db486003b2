"""Remediation actions keyed by compliance rule id, plus registry helpers."""
from __future__ import annotations

import importlib
import pkgutil
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

import boto3
from botocore.config import Config

from ..models import Violation

DEFAULT_ATTEMPT_TIMEOUT = 30.0


class RemediationContext:
    """Session wrapper handing out boto3 clients configured for remediation.

    botocore's own retries are disabled so the executor alone decides when to
    retry. ``attempt_timeout`` is applied to the connect and read of every API
    call; an action issuing several calls may therefore run longer in total.
    """

    def __init__(
        self,
        session: boto3.session.Session,
        *,
        attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT,
        client_config: Optional[Config] = None,
    ) -> None:
        self.session = session
        self.client_config = client_config or Config(
            connect_timeout=attempt_timeout,
            read_timeout=attempt_timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        self._clients: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def client(self, service_name: str) -> Any:
        """Return a cached client for *service_name*."""

        with self._lock:
            client = self._clients.get(service_name)
            if client is None:
                client = self.session.client(service_name, config=self.client_config)
                self._clients[service_name] = client
            return client


RemediationAction = Callable[[RemediationContext, Violation], str]
"""Callable applying the corrective change for one violation; returns a detail string."""


def normalize_rule_id(rule_id: str) -> str:
    """Return the lookup form of an AWS Config rule name."""

    if not isinstance(rule_id, str) or not rule_id.strip():
        raise ValueError("Rule id must be a non-empty string")
    return rule_id.strip().lower()


class ActionRegistry(Mapping[str, RemediationAction]):
    """Read-only view of rule id to remediation action, filled by decorators."""

    def __init__(self) -> None:
        self._by_rule: Dict[str, RemediationAction] = {}

    def register(self, rule_id: str) -> Callable[[RemediationAction], RemediationAction]:
        """Decorator binding the wrapped action to *rule_id*."""

        key = normalize_rule_id(rule_id)

        def decorator(action: RemediationAction) -> RemediationAction:
            existing = self._by_rule.get(key)
            if existing is not None and existing is not action:
                raise ValueError(
                    f"Rule '{rule_id}' already registered to {getattr(existing, '__name__', existing)!s}"
                )
            self._by_rule[key] = action
            return action

        return decorator

    def __getitem__(self, rule_id: str) -> RemediationAction:
        try:
            return self._by_rule[normalize_rule_id(rule_id)]
        except ValueError:
            raise KeyError(rule_id) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_rule)

    def __len__(self) -> int:
        return len(self._by_rule)

    def view(self) -> Mapping[str, RemediationAction]:
        return MappingProxyType(self._by_rule)


ACTION_REGISTRY = ActionRegistry()
register_action = ACTION_REGISTRY.register


def _load_action_modules() -> None:
    """Import every public submodule so its ``@register_action`` calls run."""

    for module_info in pkgutil.iter_modules(__path__):
        if not module_info.name.startswith("_"):
            importlib.import_module(f"{__name__}.{module_info.name}")


_load_action_modules()

REMEDIATION_ACTIONS: Mapping[str, RemediationAction] = ACTION_REGISTRY.view()

__all__ = [
    "ACTION_REGISTRY",
    "ActionRegistry",
    "DEFAULT_ATTEMPT_TIMEOUT",
    "REMEDIATION_ACTIONS",
    "RemediationAction",
    "RemediationContext",
    "normalize_rule_id",
    "register_action",
]

"""AWS compliance detection and remediation pipeline."""

from __future__ import annotations

from .classifier import classify
from .core import build_pipeline, collect_alerts, print_alerts
from .dispatcher import decide
from .errors import DeliveryError, RegistryError, RemediationLogicError
from .executor import RemediationExecutor
from .inflight import InFlightTable
from .models import (
    AlertRecord,
    ComplianceEvent,
    Decision,
    Ignored,
    PolicyRule,
    RemediationAttempt,
    RemediationResult,
    Violation,
)
from .notifier import LogNotifier, SnsNotifier
from .orchestrator import Pipeline, PipelineOutcome
from .policies import PolicyRegistry, RegistryHolder, load_default_registry, load_registry

__all__ = [
    "AlertRecord",
    "ComplianceEvent",
    "Decision",
    "DeliveryError",
    "Ignored",
    "InFlightTable",
    "LogNotifier",
    "Pipeline",
    "PipelineOutcome",
    "PolicyRegistry",
    "PolicyRule",
    "RegistryError",
    "RegistryHolder",
    "RemediationAttempt",
    "RemediationExecutor",
    "RemediationLogicError",
    "RemediationResult",
    "SnsNotifier",
    "Violation",
    "build_pipeline",
    "classify",
    "collect_alerts",
    "decide",
    "load_default_registry",
    "load_registry",
    "print_alerts",
]

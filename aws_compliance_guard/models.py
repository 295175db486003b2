"""Data models shared by the compliance detection and remediation pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
ComplianceState = Literal["COMPLIANT", "NON_COMPLIANT", "NOT_APPLICABLE"]
RemediationStatus = Literal["PENDING", "SUCCEEDED", "FAILED", "SKIPPED"]
DispatchAction = Literal["REMEDIATE", "NOTIFY_ONLY"]
KeyState = Literal["IDLE", "RESERVED", "REMEDIATING"]

SEVERITIES: Tuple[str, ...] = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
COMPLIANCE_STATES: Tuple[str, ...] = ("COMPLIANT", "NON_COMPLIANT", "NOT_APPLICABLE")

REMEDIATE: DispatchAction = "REMEDIATE"
NOTIFY_ONLY: DispatchAction = "NOTIFY_ONLY"

# (resource_id, rule_id)
RemediationKey = Tuple[str, str]


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class PolicyRule:
    """A monitored compliance rule and its remediation eligibility."""

    id: str
    description: str
    severity: Severity
    auto_remediable: bool


@dataclass(frozen=True)
class ComplianceEvent:
    """A compliance-state transition reported by the rule evaluation service."""

    rule_id: str
    resource_id: str
    resource_type: str
    new_state: ComplianceState
    observed_at: datetime
    account_id: Optional[str] = None
    region: Optional[str] = None
    annotation: Optional[str] = None

    def key(self) -> RemediationKey:
        return (self.resource_id, self.rule_id)


@dataclass(frozen=True)
class Violation:
    """A non-compliant event for a rule present in the policy registry."""

    rule_id: str
    resource_id: str
    resource_type: str
    severity: Severity
    detected_at: datetime
    auto_remediable: bool = False
    account_id: Optional[str] = None
    region: Optional[str] = None

    def key(self) -> RemediationKey:
        return (self.resource_id, self.rule_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "resourceId": self.resource_id,
            "resourceType": self.resource_type,
            "severity": self.severity,
            "detectedAt": _isoformat(self.detected_at),
            "accountId": self.account_id,
            "region": self.region,
        }


@dataclass(frozen=True)
class Ignored:
    """Classifier result for events that do not produce a violation."""

    rule_id: str
    resource_id: str
    reason: str

    UNKNOWN_RULE = "UNKNOWN_RULE"
    NOT_NON_COMPLIANT = "NOT_NON_COMPLIANT"


@dataclass(frozen=True)
class Decision:
    """Dispatcher verdict for a single violation."""

    action: DispatchAction
    reason: str = ""

    @property
    def remediate(self) -> bool:
        return self.action == REMEDIATE


@dataclass
class RemediationResult:
    """Outcome returned by the remediation executor."""

    status: Literal["SUCCEEDED", "FAILED"]
    detail: str
    attempts: int = 1
    errors: List[str] = field(default_factory=list)

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCEEDED"


@dataclass
class RemediationAttempt:
    """Lifecycle record for one remediation of a ``(resource, rule)`` key."""

    resource_id: str
    rule_id: str
    status: RemediationStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    error_detail: Optional[str] = None
    attempts: int = 0
    detail: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    def key(self) -> RemediationKey:
        return (self.resource_id, self.rule_id)

    def summary(self) -> Dict[str, Any]:
        """Return a JSON-ready description of the attempt."""

        return {
            "resourceId": self.resource_id,
            "ruleId": self.rule_id,
            "status": self.status,
            "startedAt": _isoformat(self.started_at),
            "finishedAt": _isoformat(self.finished_at),
            "attempts": self.attempts,
            "detail": self.detail,
            "errorDetail": self.error_detail,
            "retryErrors": list(self.errors),
        }


@dataclass(frozen=True)
class AlertRecord:
    """Alert handed to the notifier once per classified violation."""

    violation: Violation
    remediation_outcome: Optional[RemediationAttempt]
    published_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        outcome = self.remediation_outcome
        return {
            "violation": self.violation.to_dict(),
            "remediationOutcome": outcome.summary() if outcome is not None else None,
            "publishedAt": _isoformat(self.published_at),
        }


__all__ = [
    "AlertRecord",
    "COMPLIANCE_STATES",
    "ComplianceEvent",
    "ComplianceState",
    "Decision",
    "DispatchAction",
    "Ignored",
    "KeyState",
    "NOTIFY_ONLY",
    "PolicyRule",
    "REMEDIATE",
    "RemediationAttempt",
    "RemediationKey",
    "RemediationResult",
    "RemediationStatus",
    "SEVERITIES",
    "Severity",
    "Violation",
]

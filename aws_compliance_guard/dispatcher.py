"""Remediation dispatch decisions."""
from __future__ import annotations

from typing import Container

from .models import NOTIFY_ONLY, REMEDIATE, Decision, RemediationKey, Violation

REASON_DISABLED = "auto-remediation disabled"
REASON_NOT_ELIGIBLE = "rule is not auto-remediable"
REASON_IN_FLIGHT = "remediation already in flight"


def decide(
    violation: Violation,
    auto_remediation_enabled: bool,
    in_flight: Container[RemediationKey],
) -> Decision:
    """Return whether *violation* may be remediated automatically.

    The check against *in_flight* is advisory: the orchestrator's reservation
    is what actually prevents two concurrent remediations of one key.
    """

    if not auto_remediation_enabled:
        return Decision(NOTIFY_ONLY, REASON_DISABLED)
    if not violation.auto_remediable:
        return Decision(NOTIFY_ONLY, REASON_NOT_ELIGIBLE)
    if violation.key() in in_flight:
        return Decision(NOTIFY_ONLY, REASON_IN_FLIGHT)
    return Decision(REMEDIATE)


__all__ = ["REASON_DISABLED", "REASON_IN_FLIGHT", "REASON_NOT_ELIGIBLE", "decide"]

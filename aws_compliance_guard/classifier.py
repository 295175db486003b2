"""Classification of compliance-change events into violations."""
from __future__ import annotations

from typing import Mapping, Union

from .models import ComplianceEvent, Ignored, PolicyRule, Violation


def classify(
    event: ComplianceEvent, registry: Mapping[str, PolicyRule]
) -> Union[Violation, Ignored]:
    """Return a :class:`Violation` for monitored non-compliant events, else :class:`Ignored`.

    The rule's severity and remediation eligibility are copied from *registry*
    so later stages work from the same snapshot. The function performs no I/O;
    callers decide how to report ignored events.
    """

    if event.new_state != "NON_COMPLIANT":
        return Ignored(event.rule_id, event.resource_id, Ignored.NOT_NON_COMPLIANT)

    rule = registry.get(event.rule_id)
    if rule is None:
        return Ignored(event.rule_id, event.resource_id, Ignored.UNKNOWN_RULE)

    return Violation(
        rule_id=event.rule_id,
        resource_id=event.resource_id,
        resource_type=event.resource_type,
        severity=rule.severity,
        detected_at=event.observed_at,
        auto_remediable=rule.auto_remediable,
        account_id=event.account_id,
        region=event.region,
    )


__all__ = ["classify"]

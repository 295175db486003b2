"""Tests for violation classification."""

from __future__ import annotations

import pytest

from aws_compliance_guard.classifier import classify
from aws_compliance_guard.models import Ignored, Violation

from conftest import OBSERVED_AT, make_event


@pytest.mark.parametrize("state", ["COMPLIANT", "NOT_APPLICABLE"])
def test_non_violating_states_are_ignored(registry, state) -> None:
    result = classify(make_event(new_state=state), registry)

    assert isinstance(result, Ignored)
    assert result.reason == Ignored.NOT_NON_COMPLIANT


def test_unknown_rule_is_ignored(registry) -> None:
    result = classify(make_event(rule_id="not-a-real-rule"), registry)

    assert isinstance(result, Ignored)
    assert result.reason == Ignored.UNKNOWN_RULE
    assert result.rule_id == "not-a-real-rule"


def test_violation_carries_registry_severity_and_eligibility(registry) -> None:
    result = classify(make_event(rule_id="restricted-ssh", resource_id="sg-1"), registry)

    assert isinstance(result, Violation)
    assert result.severity == "CRITICAL"
    assert result.auto_remediable is True
    assert result.detected_at == OBSERVED_AT
    assert result.key() == ("sg-1", "restricted-ssh")


def test_classification_does_not_mutate_registry(registry) -> None:
    before = dict(registry)
    classify(make_event(), registry)
    classify(make_event(rule_id="not-a-real-rule"), registry)

    assert dict(registry) == before

"""Tests for remediation dispatch decisions."""

from __future__ import annotations

import pytest

from aws_compliance_guard.dispatcher import (
    REASON_DISABLED,
    REASON_IN_FLIGHT,
    REASON_NOT_ELIGIBLE,
    decide,
)
from aws_compliance_guard.models import NOTIFY_ONLY, REMEDIATE

from conftest import make_violation


def test_eligible_violation_is_remediated() -> None:
    decision = decide(make_violation(), True, set())

    assert decision.action == REMEDIATE
    assert decision.remediate


def test_disabled_toggle_notifies_only() -> None:
    decision = decide(make_violation(), False, set())

    assert decision.action == NOTIFY_ONLY
    assert decision.reason == REASON_DISABLED


@pytest.mark.parametrize("enabled", [True, False])
def test_non_remediable_rule_never_remediates(enabled) -> None:
    decision = decide(make_violation(auto_remediable=False), enabled, set())

    assert decision.action == NOTIFY_ONLY


def test_non_remediable_reason_when_enabled() -> None:
    decision = decide(make_violation(auto_remediable=False), True, set())

    assert decision.reason == REASON_NOT_ELIGIBLE


def test_key_in_flight_notifies_only() -> None:
    violation = make_violation()

    decision = decide(violation, True, {violation.key()})

    assert decision.action == NOTIFY_ONLY
    assert decision.reason == REASON_IN_FLIGHT


def test_other_keys_in_flight_do_not_block() -> None:
    decision = decide(make_violation(), True, {("bucket-999", "s3-bucket-public-access")})

    assert decision.action == REMEDIATE

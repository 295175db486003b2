"""Shared fixtures for the compliance guard test-suite."""

from __future__ import annotations

import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import boto3
import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from aws_compliance_guard.errors import DeliveryError
from aws_compliance_guard.models import AlertRecord, ComplianceEvent, PolicyRule, Violation
from aws_compliance_guard.policies import PolicyRegistry


OBSERVED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_event(
    rule_id: str = "s3-bucket-public-access",
    resource_id: str = "bucket-123",
    new_state: str = "NON_COMPLIANT",
    resource_type: str = "AWS::S3::Bucket",
) -> ComplianceEvent:
    return ComplianceEvent(
        rule_id=rule_id,
        resource_id=resource_id,
        resource_type=resource_type,
        new_state=new_state,  # type: ignore[arg-type]
        observed_at=OBSERVED_AT,
        account_id="111122223333",
        region="us-east-1",
    )


def make_violation(
    rule_id: str = "s3-bucket-public-access",
    resource_id: str = "bucket-123",
    *,
    auto_remediable: bool = True,
    severity: str = "HIGH",
) -> Violation:
    return Violation(
        rule_id=rule_id,
        resource_id=resource_id,
        resource_type="AWS::S3::Bucket",
        severity=severity,  # type: ignore[arg-type]
        detected_at=OBSERVED_AT,
        auto_remediable=auto_remediable,
        region="us-east-1",
    )


class RecordingNotifier:
    """Notifier that keeps every alert it receives."""

    def __init__(self, fail: bool = False) -> None:
        self.alerts: List[AlertRecord] = []
        self.fail = fail
        self._lock = threading.Lock()

    def publish(self, alert: AlertRecord) -> str:
        with self._lock:
            self.alerts.append(alert)
            count = len(self.alerts)
        if self.fail:
            raise DeliveryError("topic unavailable")
        return f"ack-{count}"


@pytest.fixture
def registry() -> PolicyRegistry:
    return PolicyRegistry(
        [
            PolicyRule("s3-bucket-public-access", "Block public buckets", "HIGH", True),
            PolicyRule("restricted-ssh", "No public SSH", "CRITICAL", True),
            PolicyRule("iam-user-mfa-enabled", "Users need MFA", "HIGH", False),
        ]
    )


@pytest.fixture
def session() -> boto3.session.Session:
    return boto3.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="us-east-1",
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()

"""Tests for alert notifiers."""

from __future__ import annotations

import json
import logging

import pytest
from botocore.stub import ANY, Stubber

from aws_compliance_guard.errors import DeliveryError
from aws_compliance_guard.models import AlertRecord, RemediationAttempt
from aws_compliance_guard.notifier import LogNotifier, SnsNotifier, alert_body, alert_subject

from conftest import OBSERVED_AT, make_violation


TOPIC_ARN = "arn:aws:sns:us-east-1:111122223333:compliance-alerts"


def _alert(status: str = "SUCCEEDED") -> AlertRecord:
    attempt = RemediationAttempt(
        "bucket-123",
        "s3-bucket-public-access",
        status,  # type: ignore[arg-type]
        OBSERVED_AT,
        finished_at=OBSERVED_AT,
        attempts=1,
        detail="Enabled public access block on bucket bucket-123.",
    )
    return AlertRecord(make_violation(), attempt, OBSERVED_AT)


def test_subject_summarises_outcome() -> None:
    subject = alert_subject(_alert())

    assert subject == "[Compliance] HIGH s3-bucket-public-access on bucket-123: SUCCEEDED"


def test_subject_is_truncated_for_sns() -> None:
    alert = AlertRecord(make_violation(resource_id="x" * 200), None, OBSERVED_AT)

    subject = alert_subject(alert)

    assert len(subject) == 100
    assert subject.endswith("...")


def test_body_is_json_alert() -> None:
    body = json.loads(alert_body(_alert("SKIPPED")))

    assert body["violation"]["resourceId"] == "bucket-123"
    assert body["remediationOutcome"]["status"] == "SKIPPED"


def test_sns_notifier_publishes(session) -> None:
    notifier = SnsNotifier(session, TOPIC_ARN)

    with Stubber(notifier._sns) as stubber:
        stubber.add_response(
            "publish",
            {"MessageId": "msg-1"},
            {
                "TopicArn": TOPIC_ARN,
                "Subject": ANY,
                "Message": ANY,
                "MessageAttributes": ANY,
            },
        )

        ack = notifier.publish(_alert())

        stubber.assert_no_pending_responses()

    assert ack == "msg-1"


def test_sns_notifier_wraps_errors(session) -> None:
    notifier = SnsNotifier(session, TOPIC_ARN)

    with Stubber(notifier._sns) as stubber:
        stubber.add_client_error("publish", service_error_code="NotFound", http_status_code=404)

        with pytest.raises(DeliveryError, match="NotFound"):
            notifier.publish(_alert())


def test_sns_notifier_requires_topic(session) -> None:
    with pytest.raises(ValueError):
        SnsNotifier(session, "")


def test_log_notifier_logs_alert(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="aws_compliance_guard.notifier"):
        ack = LogNotifier().publish(_alert())

    assert ack.startswith("log-")
    assert "s3-bucket-public-access" in caplog.text

"""Alert publication to SNS or the application log."""
from __future__ import annotations

import json
import logging
import uuid
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import DeliveryError
from .models import AlertRecord
from .utils import describe_exception

logger = logging.getLogger(__name__)

SNS_SUBJECT_LIMIT = 100
DEFAULT_SUBJECT_PREFIX = "[Compliance]"


class Notifier(Protocol):
    """Publishes alerts; returns an acknowledgement id or raises :class:`DeliveryError`."""

    def publish(self, alert: AlertRecord) -> str:
        ...


def alert_subject(alert: AlertRecord, prefix: str = DEFAULT_SUBJECT_PREFIX) -> str:
    """Return a one-line subject summarising *alert*, truncated for SNS."""

    violation = alert.violation
    outcome = alert.remediation_outcome
    status = outcome.status if outcome is not None else "DETECTED"
    subject = f"{prefix} {violation.severity} {violation.rule_id} on {violation.resource_id}: {status}"
    subject = " ".join(subject.split())
    if len(subject) > SNS_SUBJECT_LIMIT:
        subject = subject[: SNS_SUBJECT_LIMIT - 3] + "..."
    return subject


def alert_body(alert: AlertRecord) -> str:
    return json.dumps(alert.to_dict(), indent=2, default=str)


class SnsNotifier:
    """Publish alerts to an Amazon SNS topic."""

    def __init__(
        self,
        session: boto3.session.Session,
        topic_arn: str,
        *,
        subject_prefix: str = DEFAULT_SUBJECT_PREFIX,
    ) -> None:
        if not topic_arn:
            raise ValueError("topic_arn must be a non-empty string")
        self.topic_arn = topic_arn
        self.subject_prefix = subject_prefix
        self._sns = session.client("sns")

    def publish(self, alert: AlertRecord) -> str:
        violation = alert.violation
        try:
            response = self._sns.publish(
                TopicArn=self.topic_arn,
                Subject=alert_subject(alert, self.subject_prefix),
                Message=alert_body(alert),
                MessageAttributes={
                    "severity": {"DataType": "String", "StringValue": violation.severity},
                    "ruleId": {"DataType": "String", "StringValue": violation.rule_id},
                },
            )
        except (ClientError, BotoCoreError) as exc:
            raise DeliveryError(
                f"Failed to publish alert for {violation.resource_id} to {self.topic_arn}: "
                f"{describe_exception(exc)}"
            ) from exc
        return response.get("MessageId", "")


class LogNotifier:
    """Write alerts to the application log; used when no topic is configured."""

    def __init__(self, level: int = logging.WARNING) -> None:
        self.level = level

    def publish(self, alert: AlertRecord) -> str:
        logger.log(self.level, "%s\n%s", alert_subject(alert), alert_body(alert))
        return f"log-{uuid.uuid4()}"


__all__ = [
    "DEFAULT_SUBJECT_PREFIX",
    "LogNotifier",
    "Notifier",
    "SnsNotifier",
    "alert_body",
    "alert_subject",
]

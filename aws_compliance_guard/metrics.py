"""Operational counters for the pipeline."""
from __future__ import annotations

import threading
from collections import Counter
from typing import Dict, List

import boto3

from .utils import batch_iterable

COUNTERS = (
    "events_received",
    "events_ignored",
    "unknown_rule",
    "violations",
    "reservation_conflicts",
    "remediation_succeeded",
    "remediation_failed",
    "remediation_skipped",
    "remediation_logic_errors",
    "notifications_published",
    "delivery_errors",
)

CLOUDWATCH_BATCH_SIZE = 20


class PipelineMetrics:
    """Thread-safe named counters."""

    def __init__(self) -> None:
        self._counts: Counter = Counter({name: 0 for name in COUNTERS})
        self._lock = threading.Lock()

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


def publish_metrics(
    session: boto3.session.Session,
    metrics: PipelineMetrics,
    namespace: str,
) -> int:
    """Send the current counter values to CloudWatch; returns the datum count."""

    cloudwatch = session.client("cloudwatch")
    data: List[dict] = [
        {"MetricName": name, "Value": float(value), "Unit": "Count"}
        for name, value in sorted(metrics.snapshot().items())
    ]
    for batch in batch_iterable(data, CLOUDWATCH_BATCH_SIZE):
        cloudwatch.put_metric_data(Namespace=namespace, MetricData=list(batch))
    return len(data)


__all__ = ["COUNTERS", "PipelineMetrics", "publish_metrics"]

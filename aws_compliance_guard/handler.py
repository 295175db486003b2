"""AWS Lambda entry point for EventBridge and SQS invocations."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from .config import PipelineConfig
from .core import build_pipeline, build_session
from .errors import EventParseError
from .events import parse_config_event
from .metrics import PipelineMetrics, publish_metrics
from .models import ComplianceEvent
from .orchestrator import Pipeline
from .utils import describe_exception, setup_logging

logger = logging.getLogger(__name__)

_PIPELINE: Optional[Pipeline] = None
_CONFIG: Optional[PipelineConfig] = None


def get_pipeline() -> Pipeline:
    """Build the pipeline once per container from environment configuration."""

    global _PIPELINE, _CONFIG
    if _PIPELINE is None:
        _CONFIG = PipelineConfig.from_env()
        setup_logging(_CONFIG.log_level)
        _PIPELINE = build_pipeline(_CONFIG)
    return _PIPELINE


def _extract_events(event: Dict[str, Any]) -> List[ComplianceEvent]:
    payloads: List[Any]
    if "Records" in event:
        payloads = []
        for record in event["Records"]:
            try:
                payloads.append(json.loads(record.get("body", "")))
            except ValueError as exc:
                logger.error("Skipping SQS record %s: %s", record.get("messageId", "?"), exc)
    else:
        payloads = [event]

    events: List[ComplianceEvent] = []
    for payload in payloads:
        try:
            events.append(parse_config_event(payload))
        except EventParseError as exc:
            logger.error("Skipping unparsable compliance event: %s", exc)
    return events


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, int]:
    pipeline = get_pipeline()
    # Lambda runs one invocation per container at a time; counters cover this batch only.
    pipeline.metrics = PipelineMetrics()
    outcomes = pipeline.process(_extract_events(event))

    summary = {"processed": len(outcomes), "violations": 0, "remediated": 0, "failed": 0, "ignored": 0}
    for outcome in outcomes:
        if outcome is None:
            summary["ignored"] += 1
            continue
        summary["violations"] += 1
        if outcome.attempt.status == "SUCCEEDED":
            summary["remediated"] += 1
        elif outcome.attempt.status == "FAILED":
            summary["failed"] += 1

    if _CONFIG is not None and _CONFIG.metrics_namespace:
        try:
            publish_metrics(build_session(_CONFIG), pipeline.metrics, _CONFIG.metrics_namespace)
        except Exception as exc:  # metrics are best effort
            logger.warning("Failed to publish metrics: %s", describe_exception(exc))

    logger.info("Processed compliance batch: %s", summary)
    return summary


__all__ = ["get_pipeline", "lambda_handler"]

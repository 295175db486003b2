"""Command line interface for the compliance guard."""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List, Optional

from .config import PipelineConfig
from .core import (
    build_pipeline,
    build_session,
    collect_alerts,
    export_alerts_to_excel,
    export_alerts_to_json,
    print_alerts,
)
from .errors import EventParseError, RegistryError
from .events import parse_config_event
from .feeds import SqsEventFeed
from .metrics import publish_metrics
from .models import ComplianceEvent
from .orchestrator import PipelineOutcome
from .policies import load_default_registry, load_registry
from .utils import setup_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Classify AWS Config compliance events, remediate and alert."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--events",
        dest="events_path",
        help="Path to a JSON array or JSON-lines file of compliance events",
    )
    source.add_argument("--queue-url", help="SQS queue URL to consume compliance events from")
    parser.add_argument(
        "--max-batches",
        type=int,
        default=1,
        help="Number of SQS receive calls before exiting (default: 1)",
    )
    parser.add_argument("--registry", help="Policy registry YAML/JSON file (default: bundled catalog)")
    parser.add_argument(
        "--validate-registry",
        action="store_true",
        help="Load and validate the policy registry, then exit",
    )
    parser.add_argument(
        "--auto-remediate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable automated remediation (default: AUTO_REMEDIATION_ENABLED)",
    )
    parser.add_argument("--topic-arn", help="SNS topic to publish alerts to (default: log only)")
    parser.add_argument("--profile", help="AWS CLI profile to use", default=None)
    parser.add_argument("--region", help="AWS region for remediation calls", default=None)
    parser.add_argument("--workers", type=int, help="Concurrent events to process")
    parser.add_argument("--max-attempts", type=int, help="Remediation attempts per violation")
    parser.add_argument("--metrics-namespace", help="Publish pipeline counters to this CloudWatch namespace")
    parser.add_argument("--json", dest="json_path", help="Optional path to export alerts as JSON")
    parser.add_argument(
        "--excel",
        dest="excel_path",
        help="Optional path to export alerts as an Excel workbook (.xlsx)",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def load_events(path: str) -> List[ComplianceEvent]:
    """Read compliance events from a JSON array or JSON-lines file."""

    with open(path, "r", encoding="utf-8") as fh:
        text = fh.read()

    stripped = text.lstrip()
    payloads: List[Any]
    if stripped.startswith("["):
        payloads = json.loads(text)
    else:
        payloads = [json.loads(line) for line in text.splitlines() if line.strip()]
    return [parse_config_event(payload) for payload in payloads]


def _apply_overrides(config: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    overrides = {
        "policy_registry_path": args.registry,
        "auto_remediation_enabled": args.auto_remediate,
        "sns_topic_arn": args.topic_arn,
        "profile": args.profile,
        "region": args.region,
        "max_workers": args.workers,
        "max_attempts": args.max_attempts,
        "metrics_namespace": args.metrics_namespace,
        "log_level": args.log_level,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m aws_compliance_guard``."""

    args = parse_args(argv)
    try:
        config = _apply_overrides(PipelineConfig.from_env(), args).validate()
        setup_logging(config.log_level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.validate_registry:
        try:
            if config.policy_registry_path:
                registry = load_registry(config.policy_registry_path)
            else:
                registry = load_default_registry()
        except RegistryError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(
            f"Policy registry is valid: {len(registry)} rules, "
            f"{len(registry.auto_remediable_rules())} auto-remediable."
        )
        return 0

    if not args.events_path and not args.queue_url:
        print("Error: Provide compliance events with --events or --queue-url.", file=sys.stderr)
        return 1

    session = build_session(config)
    try:
        pipeline = build_pipeline(config, session)
    except (RegistryError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    outcomes: List[Optional[PipelineOutcome]]
    if args.events_path:
        try:
            events = load_events(args.events_path)
        except (OSError, ValueError, EventParseError) as exc:
            print(f"Error: Failed to read events: {exc}", file=sys.stderr)
            return 1
        outcomes = pipeline.process(events)
    else:
        outcomes = []
        feed = SqsEventFeed(session, args.queue_url, max_workers=config.max_workers)
        feed.subscribe(lambda event: outcomes.append(pipeline.handle(event)), max_batches=args.max_batches)

    alerts = collect_alerts(outcomes)
    print_alerts(alerts)

    if args.json_path:
        export_alerts_to_json(alerts, args.json_path)
        print(f"Alerts exported to {args.json_path}")

    if args.excel_path:
        try:
            path = export_alerts_to_excel(alerts, args.excel_path)
        except RuntimeError as exc:
            print(f"Failed to export Excel report: {exc}", file=sys.stderr)
        else:
            print(f"Excel report written to {path}")

    if config.metrics_namespace:
        count = publish_metrics(session, pipeline.metrics, config.metrics_namespace)
        print(f"Published {count} metrics to {config.metrics_namespace}")

    return 0


__all__ = ["load_events", "main", "parse_args"]

"""Pipeline assembly and alert reporting utilities."""
from __future__ import annotations

import json
from typing import Iterable, List, Optional

import boto3

from .config import PipelineConfig
from .executor import RemediationExecutor
from .models import AlertRecord
from .notifier import LogNotifier, Notifier, SnsNotifier
from .orchestrator import Pipeline, PipelineOutcome
from .policies import RegistryHolder, load_default_registry, load_registry
from .remediations import RemediationContext


SEVERITY_ORDER = {
    "CRITICAL": 0,
    "HIGH": 1,
    "MEDIUM": 2,
    "LOW": 3,
}

SEVERITY_FILLS = {
    "CRITICAL": "F4B6B6",
    "HIGH": "F8CBAD",
    "MEDIUM": "FFE699",
    "LOW": "DDEBF7",
}

EXCEL_HEADERS = ("Severity", "Rule", "Resource", "Resource Type", "Outcome", "Attempts", "Detail")


def _alert_sort_key(alert: AlertRecord) -> tuple[int, str, str]:
    """Return a tuple used to order alerts consistently."""

    violation = alert.violation
    severity_rank = SEVERITY_ORDER.get(violation.severity.upper(), len(SEVERITY_ORDER))
    return (severity_rank, violation.resource_id, violation.rule_id)


def build_session(config: PipelineConfig) -> boto3.session.Session:
    return boto3.Session(profile_name=config.profile, region_name=config.region)


def build_pipeline(
    config: PipelineConfig,
    session: Optional[boto3.session.Session] = None,
    *,
    notifier: Optional[Notifier] = None,
) -> Pipeline:
    """Assemble a :class:`Pipeline` from *config*.

    The registry is loaded and validated here, so an auto-remediable rule
    without an action fails at startup rather than during remediation.
    """

    session = session or build_session(config)
    if config.policy_registry_path:
        registry = load_registry(config.policy_registry_path)
        holder = RegistryHolder(registry, source=config.policy_registry_path)
    else:
        holder = RegistryHolder(load_default_registry())

    executor = RemediationExecutor(
        RemediationContext(session, attempt_timeout=config.attempt_timeout),
        max_attempts=config.max_attempts,
        backoff_base=config.backoff_base,
        backoff_max=config.backoff_max,
    )
    if notifier is None:
        if config.sns_topic_arn:
            notifier = SnsNotifier(
                session, config.sns_topic_arn, subject_prefix=config.sns_subject_prefix
            )
        else:
            notifier = LogNotifier()

    return Pipeline(
        holder,
        executor,
        notifier,
        auto_remediation_enabled=config.auto_remediation_enabled,
        max_workers=config.max_workers,
    )


def collect_alerts(outcomes: Iterable[Optional[PipelineOutcome]]) -> List[AlertRecord]:
    """Return the alerts of *outcomes* ordered by severity, skipping ignored events."""

    alerts = [outcome.alert for outcome in outcomes if outcome is not None]
    return sorted(alerts, key=_alert_sort_key)


def _outcome_status(alert: AlertRecord) -> str:
    outcome = alert.remediation_outcome
    return outcome.status if outcome is not None else "-"


def _outcome_detail(alert: AlertRecord) -> str:
    outcome = alert.remediation_outcome
    if outcome is None:
        return ""
    return outcome.error_detail or outcome.detail or ""


def print_alerts(alerts: Iterable[AlertRecord]) -> None:
    """Pretty-print alerts to stdout."""

    alerts = list(alerts)
    if not alerts:
        print("No violations detected.")
        return

    header = f"{'Severity':<9} {'Rule':<40} {'Resource':<40} {'Outcome':<10} Detail"
    print(header)
    print("-" * len(header))
    for alert in alerts:
        violation = alert.violation
        resource = (
            (violation.resource_id[:37] + "...")
            if len(violation.resource_id) > 40
            else violation.resource_id
        )
        print(
            f"{violation.severity:<9} {violation.rule_id:<40} {resource:<40} "
            f"{_outcome_status(alert):<10} {_outcome_detail(alert)}"
        )


def export_alerts_to_json(alerts: Iterable[AlertRecord], path: str) -> str:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump([alert.to_dict() for alert in alerts], fh, indent=2, default=str)
    return path


def export_alerts_to_excel(alerts: Iterable[AlertRecord], path: str) -> str:
    """Write *alerts* to an Excel workbook located at *path*.

    The header row is frozen and filterable; severity cells are shaded.
    """

    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        from openpyxl.utils import get_column_letter
    except ImportError as exc:  # pragma: no cover - optional extra not installed
        raise RuntimeError(
            "Excel export needs openpyxl; install 'aws-compliance-guard[excel]'."
        ) from exc

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Alerts"
    sheet.append(list(EXCEL_HEADERS))
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    widths = {index: len(header) for index, header in enumerate(EXCEL_HEADERS, start=1)}
    for alert in sorted(alerts, key=_alert_sort_key):
        row = _excel_row(alert)
        sheet.append(row)
        severity_cell = sheet.cell(row=sheet.max_row, column=1)
        colour = SEVERITY_FILLS.get(alert.violation.severity)
        if colour:
            severity_cell.fill = PatternFill(start_color=colour, end_color=colour, fill_type="solid")
        for index, value in enumerate(row, start=1):
            widths[index] = max(widths[index], len(str(value)))

    for index, width in widths.items():
        sheet.column_dimensions[get_column_letter(index)].width = min(width + 2, 60)
    sheet.freeze_panes = "A2"
    sheet.auto_filter.ref = sheet.dimensions

    workbook.save(path)
    return path


def _excel_row(alert: AlertRecord) -> List[object]:
    outcome = alert.remediation_outcome
    return [
        alert.violation.severity,
        alert.violation.rule_id,
        alert.violation.resource_id,
        alert.violation.resource_type,
        _outcome_status(alert),
        outcome.attempts if outcome else 0,
        _outcome_detail(alert),
    ]


__all__ = [
    "SEVERITY_ORDER",
    "build_pipeline",
    "build_session",
    "collect_alerts",
    "export_alerts_to_excel",
    "export_alerts_to_json",
    "print_alerts",
]

"""Pipeline orchestration: classify, dispatch, remediate and notify."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

from .classifier import classify
from .dispatcher import REASON_IN_FLIGHT, decide
from .errors import DeliveryError, RemediationLogicError
from .inflight import InFlightTable
from .metrics import PipelineMetrics
from .models import (
    NOTIFY_ONLY,
    AlertRecord,
    ComplianceEvent,
    Decision,
    Ignored,
    RemediationAttempt,
    RemediationResult,
    Violation,
)
from .notifier import Notifier
from .policies import RegistryHolder
from .utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class Executor(Protocol):
    def execute(self, violation: Violation) -> RemediationResult:
        ...


@dataclass
class PipelineOutcome:
    """Everything one pipeline pass produced for a classified violation."""

    violation: Violation
    decision: Decision
    attempt: RemediationAttempt
    alert: AlertRecord
    delivered: bool
    ack: Optional[str] = None


class Pipeline:
    """Drive compliance events through classification, remediation and alerting.

    Per ``(resource_id, rule_id)`` key the pipeline moves IDLE -> RESERVED ->
    REMEDIATING and back to IDLE, with the reservation in :class:`InFlightTable`
    as the only state kept between passes. Every violation produces exactly one
    notifier call; no pipeline failure propagates to the caller.
    """

    def __init__(
        self,
        registry: RegistryHolder,
        executor: Executor,
        notifier: Notifier,
        *,
        auto_remediation_enabled: bool = False,
        metrics: Optional[PipelineMetrics] = None,
        in_flight: Optional[InFlightTable] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.notifier = notifier
        self.auto_remediation_enabled = auto_remediation_enabled
        self.metrics = metrics or PipelineMetrics()
        self.in_flight = in_flight or InFlightTable()
        self.max_workers = max_workers

    def handle(self, event: ComplianceEvent) -> Optional[PipelineOutcome]:
        """Run one pass for *event*; returns ``None`` when the event is ignored."""

        self.metrics.increment("events_received")
        result = classify(event, self.registry.current)
        if isinstance(result, Ignored):
            self._record_ignored(result)
            return None

        violation = result
        self.metrics.increment("violations")
        decision = decide(violation, self.auto_remediation_enabled, self.in_flight)

        attempt: Optional[RemediationAttempt] = None
        if decision.remediate:
            attempt = self._reserve(violation)
            if attempt is None:
                decision = Decision(NOTIFY_ONLY, REASON_IN_FLIGHT)
        elif decision.reason == REASON_IN_FLIGHT:
            self.metrics.increment("reservation_conflicts")

        if attempt is not None:
            self._remediate(violation, attempt)
        else:
            attempt = self._skipped(violation, decision)

        return self._notify(violation, decision, attempt)

    def process(self, events: Iterable[ComplianceEvent]) -> List[Optional[PipelineOutcome]]:
        """Handle *events* concurrently; results are returned in input order."""

        events = list(events)
        if not events:
            return []
        workers = max(1, min(self.max_workers, len(events)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="compliance") as pool:
            return list(pool.map(self.handle, events))

    def __call__(self, event: ComplianceEvent) -> Optional[PipelineOutcome]:
        return self.handle(event)

    def _record_ignored(self, ignored: Ignored) -> None:
        self.metrics.increment("events_ignored")
        if ignored.reason == Ignored.UNKNOWN_RULE:
            self.metrics.increment("unknown_rule")
            logger.warning(
                "Ignoring event for unmonitored rule '%s' on %s",
                ignored.rule_id,
                ignored.resource_id,
            )
        else:
            logger.debug("Ignoring non-violation event for %s/%s", ignored.resource_id, ignored.rule_id)

    def _reserve(self, violation: Violation) -> Optional[RemediationAttempt]:
        attempt = RemediationAttempt(
            resource_id=violation.resource_id,
            rule_id=violation.rule_id,
            status="PENDING",
            started_at=utc_now(),
        )
        if self.in_flight.try_reserve(violation.key(), attempt):
            return attempt
        self.metrics.increment("reservation_conflicts")
        logger.debug(
            "Remediation of %s for %s already in flight; notifying only",
            violation.rule_id,
            violation.resource_id,
        )
        return None

    def _remediate(self, violation: Violation, attempt: RemediationAttempt) -> None:
        key = violation.key()
        try:
            self.in_flight.mark_remediating(key)
            try:
                result = self.executor.execute(violation)
            except RemediationLogicError as exc:
                self.metrics.increment("remediation_logic_errors")
                logger.error(
                    "Rule '%s' is auto-remediable but has no remediation action: %s",
                    violation.rule_id,
                    exc,
                    exc_info=True,
                )
                result = RemediationResult(status="FAILED", detail=str(exc), attempts=0)
            except Exception as exc:  # recorded as a FAILED attempt
                logger.exception(
                    "Executor failed for %s on %s", violation.rule_id, violation.resource_id
                )
                result = RemediationResult(status="FAILED", detail=str(exc) or type(exc).__name__)
        finally:
            self.in_flight.release(key)

        attempt.status = result.status
        attempt.finished_at = utc_now()
        attempt.attempts = result.attempts
        attempt.errors = list(result.errors)
        if result.succeeded:
            attempt.detail = result.detail
            self.metrics.increment("remediation_succeeded")
            logger.info(
                "Remediated %s on %s after %d attempt(s): %s",
                violation.rule_id,
                violation.resource_id,
                result.attempts,
                result.detail,
            )
        else:
            attempt.error_detail = result.detail
            self.metrics.increment("remediation_failed")
            logger.error(
                "Remediation of %s on %s failed after %d attempt(s): %s",
                violation.rule_id,
                violation.resource_id,
                result.attempts,
                result.detail,
            )

    def _skipped(self, violation: Violation, decision: Decision) -> RemediationAttempt:
        now = utc_now()
        self.metrics.increment("remediation_skipped")
        return RemediationAttempt(
            resource_id=violation.resource_id,
            rule_id=violation.rule_id,
            status="SKIPPED",
            started_at=now,
            finished_at=now,
            detail=decision.reason,
        )

    def _notify(
        self, violation: Violation, decision: Decision, attempt: RemediationAttempt
    ) -> PipelineOutcome:
        alert = AlertRecord(violation=violation, remediation_outcome=attempt, published_at=utc_now())
        try:
            ack = self.notifier.publish(alert)
        except DeliveryError as exc:
            self.metrics.increment("delivery_errors")
            logger.error("Alert delivery failed for %s/%s: %s", violation.resource_id, violation.rule_id, exc)
            return PipelineOutcome(violation, decision, attempt, alert, delivered=False)
        except Exception:  # counted as a delivery error
            self.metrics.increment("delivery_errors")
            logger.exception("Notifier raised unexpectedly for %s/%s", violation.resource_id, violation.rule_id)
            return PipelineOutcome(violation, decision, attempt, alert, delivered=False)

        self.metrics.increment("notifications_published")
        return PipelineOutcome(violation, decision, attempt, alert, delivered=True, ack=ack)


__all__ = ["DEFAULT_MAX_WORKERS", "Pipeline", "PipelineOutcome"]

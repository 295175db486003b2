"""Remediation execution with bounded retries."""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Mapping, Optional

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .errors import (
    PermanentRemediationError,
    RemediationLogicError,
    TransientRemediationError,
)
from .models import RemediationResult, Violation
from .remediations import REMEDIATION_ACTIONS, RemediationAction, RemediationContext
from .utils import describe_exception, error_code

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_BACKOFF_MAX = 8.0

TRANSIENT_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "SlowDown",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalError",
        "InternalFailure",
        "InternalServerError",
        "RequestTimeout",
        "RequestTimeoutException",
        "PriorRequestNotComplete",
        "OperationAborted",
    }
)

TRANSIENT_EXCEPTIONS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
    TransientRemediationError,
)


def is_transient(exc: Exception) -> bool:
    """Return ``True`` when *exc* is worth retrying."""

    if isinstance(exc, TRANSIENT_EXCEPTIONS):
        return True
    if isinstance(exc, ClientError):
        if error_code(exc) in TRANSIENT_ERROR_CODES:
            return True
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return status >= 500
    return False


class RemediationExecutor:
    """Runs the remediation action mapped to a violation's rule."""

    def __init__(
        self,
        context: Optional[RemediationContext],
        actions: Mapping[str, RemediationAction] = REMEDIATION_ACTIONS,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_max: float = DEFAULT_BACKOFF_MAX,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.context = context
        self.actions = actions
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        """Delay before retrying after the *attempt*-th failure (1-based)."""

        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    def resolve(self, rule_id: str) -> RemediationAction:
        """Return the action for *rule_id* or raise :class:`RemediationLogicError`."""

        action = self.actions.get(rule_id) or self.actions.get(rule_id.strip().lower())
        if action is None:
            raise RemediationLogicError(f"No remediation action is mapped to rule '{rule_id}'")
        return action

    def execute(self, violation: Violation) -> RemediationResult:
        """Apply the remediation for *violation*, retrying transient failures.

        Raises :class:`RemediationLogicError` before any attempt when the rule
        has no action; every other failure is reported in the result.
        """

        action = self.resolve(violation.rule_id)
        errors: List[str] = []
        attempt = 0
        while True:
            attempt += 1
            try:
                detail = action(self.context, violation)
            except Exception as exc:  # classified below; never escapes as an exception
                message = describe_exception(exc)
                if isinstance(exc, PermanentRemediationError) or not is_transient(exc):
                    if not isinstance(exc, (ClientError, PermanentRemediationError)):
                        logger.exception(
                            "Remediation %s for %s raised unexpectedly",
                            violation.rule_id,
                            violation.resource_id,
                        )
                    return RemediationResult(
                        status="FAILED", detail=message, attempts=attempt, errors=errors
                    )

                errors.append(message)
                if attempt >= self.max_attempts:
                    logger.warning(
                        "Remediation %s for %s exhausted %d attempts: %s",
                        violation.rule_id,
                        violation.resource_id,
                        attempt,
                        message,
                    )
                    return RemediationResult(
                        status="FAILED", detail=message, attempts=attempt, errors=errors
                    )

                delay = self.backoff(attempt)
                logger.info(
                    "Transient failure remediating %s for %s (attempt %d/%d), retrying in %.1fs: %s",
                    violation.rule_id,
                    violation.resource_id,
                    attempt,
                    self.max_attempts,
                    delay,
                    message,
                )
                self._sleep(delay)
                continue

            return RemediationResult(
                status="SUCCEEDED", detail=detail or "", attempts=attempt, errors=errors
            )


__all__ = [
    "DEFAULT_BACKOFF_BASE",
    "DEFAULT_BACKOFF_MAX",
    "DEFAULT_MAX_ATTEMPTS",
    "RemediationExecutor",
    "TRANSIENT_ERROR_CODES",
    "is_transient",
]

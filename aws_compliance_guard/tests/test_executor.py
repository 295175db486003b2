"""Tests for remediation execution and retry policy."""

from __future__ import annotations

from typing import List

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from aws_compliance_guard.errors import (
    PermanentRemediationError,
    RemediationLogicError,
    TransientRemediationError,
)
from aws_compliance_guard.executor import RemediationExecutor, is_transient

from conftest import make_violation


def _client_error(code: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} happened"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "PutPublicAccessBlock",
    )


class FlakyAction:
    """Raise the queued exceptions in order, then succeed."""

    def __init__(self, failures: List[Exception]) -> None:
        self.failures = list(failures)
        self.calls = 0

    def __call__(self, context, violation) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return f"fixed {violation.resource_id}"


def _executor(action, **kwargs):
    delays: List[float] = []
    executor = RemediationExecutor(
        None,
        {"s3-bucket-public-access": action},
        sleep=delays.append,
        **kwargs,
    )
    return executor, delays


def test_success_on_first_attempt() -> None:
    action = FlakyAction([])
    executor, delays = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "SUCCEEDED"
    assert result.detail == "fixed bucket-123"
    assert result.attempts == 1
    assert delays == []


def test_transient_failures_then_success_within_ceiling() -> None:
    action = FlakyAction([_client_error("Throttling"), _client_error("Throttling")])
    executor, delays = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "SUCCEEDED"
    assert result.attempts == 3
    assert result.retries == 2
    assert len(result.errors) == 2
    assert delays == [1.0, 2.0]


def test_retry_exhaustion_preserves_last_error() -> None:
    action = FlakyAction(
        [
            _client_error("Throttling"),
            EndpointConnectionError(endpoint_url="https://s3.amazonaws.com"),
            _client_error("SlowDown", 503),
        ]
    )
    executor, delays = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "FAILED"
    assert result.attempts == 3
    assert result.detail.startswith("SlowDown")
    assert action.calls == 3
    assert len(delays) == 2


@pytest.mark.parametrize("code", ["AccessDenied", "NoSuchBucket"])
def test_non_transient_failures_are_not_retried(code) -> None:
    action = FlakyAction([_client_error(code, 403)])
    executor, delays = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "FAILED"
    assert result.attempts == 1
    assert code in result.detail
    assert delays == []


def test_explicit_permanent_error_fails_immediately() -> None:
    action = FlakyAction([PermanentRemediationError("key is pending deletion")])
    executor, _ = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "FAILED"
    assert result.detail == "key is pending deletion"


def test_unexpected_exception_fails_without_retry() -> None:
    action = FlakyAction([KeyError("KeyMetadata")])
    executor, delays = _executor(action)

    result = executor.execute(make_violation())

    assert result.status == "FAILED"
    assert delays == []


def test_unmapped_rule_raises_logic_error() -> None:
    executor, _ = _executor(FlakyAction([]))

    with pytest.raises(RemediationLogicError):
        executor.execute(make_violation(rule_id="iam-user-mfa-enabled"))


def test_backoff_is_capped() -> None:
    executor, _ = _executor(FlakyAction([]), backoff_base=2.0, backoff_max=5.0)

    assert [executor.backoff(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 5.0, 5.0]


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RemediationExecutor(None, {}, max_attempts=0)


def test_transient_classification() -> None:
    assert is_transient(_client_error("ThrottlingException"))
    assert is_transient(_client_error("SomethingOdd", 500))
    assert is_transient(TransientRemediationError("busy"))
    assert not is_transient(_client_error("AccessDenied", 403))
    assert not is_transient(ValueError("bad"))

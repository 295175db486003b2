"""Tests for the in-flight remediation table."""

from __future__ import annotations

import threading

import pytest

from aws_compliance_guard.inflight import InFlightTable
from aws_compliance_guard.models import RemediationAttempt

from conftest import OBSERVED_AT


def _attempt(resource_id: str = "bucket-1", rule_id: str = "rule") -> RemediationAttempt:
    return RemediationAttempt(resource_id, rule_id, "PENDING", OBSERVED_AT)


def test_reservation_lifecycle() -> None:
    table = InFlightTable()
    key = ("bucket-1", "rule")
    attempt = _attempt()

    assert table.state(key) == "IDLE"
    assert table.try_reserve(key, attempt)
    assert table.state(key) == "RESERVED"
    assert key in table
    assert table.get(key) is attempt

    assert table.mark_remediating(key) is attempt
    assert table.state(key) == "REMEDIATING"

    assert table.release(key) is attempt
    assert table.state(key) == "IDLE"
    assert len(table) == 0


def test_second_reservation_of_same_key_fails() -> None:
    table = InFlightTable()
    key = ("bucket-1", "rule")

    assert table.try_reserve(key, _attempt())
    assert not table.try_reserve(key, _attempt())
    assert table.try_reserve(("bucket-2", "rule"), _attempt("bucket-2"))
    assert sorted(table.keys()) == [("bucket-1", "rule"), ("bucket-2", "rule")]


def test_mark_remediating_requires_reservation() -> None:
    table = InFlightTable()

    with pytest.raises(RuntimeError, match="IDLE"):
        table.mark_remediating(("bucket-1", "rule"))


def test_release_of_idle_key_is_harmless() -> None:
    assert InFlightTable().release(("bucket-1", "rule")) is None


def test_concurrent_reservations_have_single_winner() -> None:
    table = InFlightTable(stripes=4)
    key = ("bucket-1", "rule")
    barrier = threading.Barrier(50)
    wins = []
    lock = threading.Lock()

    def contender() -> None:
        barrier.wait()
        if table.try_reserve(key, _attempt()):
            with lock:
                wins.append(1)

    threads = [threading.Thread(target=contender) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(wins) == 1


def test_stripes_must_be_positive() -> None:
    with pytest.raises(ValueError):
        InFlightTable(stripes=0)

"""Concurrent table of remediation attempts currently in flight."""
from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from .models import KeyState, RemediationAttempt, RemediationKey

DEFAULT_STRIPES = 64


class InFlightTable:
    """Keyed store of in-flight attempts guarded by striped locks.

    Each ``(resource_id, rule_id)`` key hashes to one of ``stripes`` locks, so
    operations on the same key are serialised while unrelated keys rarely share
    a lock. No method performs I/O while holding a lock.
    """

    def __init__(self, stripes: int = DEFAULT_STRIPES) -> None:
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._shards: List[Dict[RemediationKey, Tuple[KeyState, RemediationAttempt]]] = [
            {} for _ in range(stripes)
        ]

    def _slot(self, key: RemediationKey) -> int:
        return hash(key) % len(self._locks)

    def try_reserve(self, key: RemediationKey, attempt: RemediationAttempt) -> bool:
        """Atomically move *key* from IDLE to RESERVED; ``False`` if already taken."""

        slot = self._slot(key)
        with self._locks[slot]:
            shard = self._shards[slot]
            if key in shard:
                return False
            shard[key] = ("RESERVED", attempt)
            return True

    def mark_remediating(self, key: RemediationKey) -> RemediationAttempt:
        """Move a reserved *key* to REMEDIATING and return its attempt."""

        slot = self._slot(key)
        with self._locks[slot]:
            shard = self._shards[slot]
            entry = shard.get(key)
            if entry is None or entry[0] != "RESERVED":
                state = entry[0] if entry else "IDLE"
                raise RuntimeError(f"Cannot start remediation for {key}: key is {state}")
            shard[key] = ("REMEDIATING", entry[1])
            return entry[1]

    def release(self, key: RemediationKey) -> Optional[RemediationAttempt]:
        """Remove *key*, returning it to IDLE; returns the attempt it held."""

        slot = self._slot(key)
        with self._locks[slot]:
            entry = self._shards[slot].pop(key, None)
        return entry[1] if entry else None

    def state(self, key: RemediationKey) -> KeyState:
        slot = self._slot(key)
        with self._locks[slot]:
            entry = self._shards[slot].get(key)
        return entry[0] if entry else "IDLE"

    def get(self, key: RemediationKey) -> Optional[RemediationAttempt]:
        slot = self._slot(key)
        with self._locks[slot]:
            entry = self._shards[slot].get(key)
        return entry[1] if entry else None

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple):
            return False
        slot = self._slot(key)  # type: ignore[arg-type]
        with self._locks[slot]:
            return key in self._shards[slot]

    def keys(self) -> List[RemediationKey]:
        """Return a point-in-time list of reserved keys."""

        collected: List[RemediationKey] = []
        for lock, shard in zip(self._locks, self._shards):
            with lock:
                collected.extend(shard)
        return collected

    def __len__(self) -> int:
        return len(self.keys())


__all__ = ["DEFAULT_STRIPES", "InFlightTable"]

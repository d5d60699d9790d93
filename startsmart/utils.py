"""Shared utility functions used across StartSmart modules."""
from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def word_count(text: str) -> int:
    """Count whitespace-separated words in *text*."""
    return len(text.split())


class IdFactory:
    """Hands out ``<prefix>-<n>`` identifiers, unique per prefix for the factory's lifetime.

    A store keeps one factory across resets so identifiers are never reused
    within a running process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: defaultdict[str, itertools.count] = defaultdict(lambda: itertools.count(1))

    def __call__(self, prefix: str) -> str:
        with self._lock:
            return f"{prefix}-{next(self._counters[prefix])}"

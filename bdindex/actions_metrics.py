"""Counters and histograms that track the executed actions."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Sequence
from http import HTTPStatus

_REGISTRY: dict[str, object] = {}
_REGISTRY_LOCK = threading.Lock()


def _register(collector: Counter | Histogram) -> None:
    with _REGISTRY_LOCK:
        if collector.name in _REGISTRY:
            raise ValueError(f"duplicate metrics collector registration: {collector.name}")
        _REGISTRY[collector.name] = collector


def _labels(expected: Sequence[str], values: tuple[str, ...]) -> tuple[str, ...]:
    if len(values) != len(expected):
        raise ValueError(f"expected {len(expected)} label values, got {len(values)}")
    return tuple(str(value) for value in values)


class Counter:
    """A monotonically increasing count per set of label values."""

    def __init__(self, name: str, help: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def inc(self, *args: str) -> None:
        """Add one to the count of the given label values."""
        key = _labels(self.label_names, args)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + 1

    def value(self, *args: str) -> float:
        """The current count of the given label values."""
        key = _labels(self.label_names, args)
        with self._lock:
            return self._values.get(key, 0)


class Histogram:
    """Observations counted into upper-bounded buckets per set of label values."""

    def __init__(self, name: str, help: str, buckets: Iterable[float], label_names: Iterable[str]) -> None:
        self.name = name
        self.help = help
        self.buckets = tuple(sorted(buckets))
        self.label_names = tuple(label_names)
        self._counts: dict[tuple[str, ...], list[int]] = {}
        self._lock = threading.Lock()

    def observe(self, value: float, *args: str) -> None:
        """Record one observation for the given label values."""
        key = _labels(self.label_names, args)
        with self._lock:
            counts = self._counts.setdefault(key, [0] * (len(self.buckets) + 1))
            index = next(
                (i for i, bound in enumerate(self.buckets) if value <= bound), len(self.buckets)
            )
            counts[index] += 1

    def bucket_counts(self, *args: str) -> list[int]:
        """Cumulative counts of the observations at or below each bucket bound."""
        key = _labels(self.label_names, args)
        with self._lock:
            counts = self._counts.get(key, [0] * (len(self.buckets) + 1))
            cumulative: list[int] = []
            total = 0
            for count in counts[: len(self.buckets)]:
                total += count
                cumulative.append(total)
            return cumulative


ACTION_RESPONSE_TIME = Histogram(
    "bdjuno_action_response_time",
    "Time it has taken to execute an action",
    [0.5, 1, 2, 3, 4, 5],
    ["path"],
)

ACTION_COUNTER = Counter(
    "bdjuno_actions_total_count",
    "Total number of actions executed.",
    ["path", "http_status_code"],
)

ACTION_ERROR_COUNTER = Counter(
    "bdjuno_actions_error_count",
    "Total number of errors emitted.",
    ["path", "http_status_code"],
)

for _collector in (ACTION_RESPONSE_TIME, ACTION_COUNTER, ACTION_ERROR_COUNTER):
    _register(_collector)


def success_counter(path: str) -> None:
    """Count a successful action on ``path``."""
    ACTION_COUNTER.inc(path, str(int(HTTPStatus.OK)))


def error_counter(path: str) -> None:
    """Count a failed action on ``path``."""
    ACTION_ERROR_COUNTER.inc(path, str(int(HTTPStatus.INTERNAL_SERVER_ERROR)))


def response_time_buckets(path: str, start: float) -> None:
    """Record the time elapsed since ``start``, a ``time.monotonic()`` reading."""
    ACTION_RESPONSE_TIME.observe(time.monotonic() - start, path)
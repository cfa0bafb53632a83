"""Latency trends and check tallies shared by every worker of a run.

These are the only objects workers write to concurrently. All mutation
happens under a ``threading.Lock`` and never awaits, so it is safe both for
asyncio tasks and for callers on other threads.
"""

from __future__ import annotations

import math
import statistics
import threading
from collections.abc import Iterable
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class TrendSummary:
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p95: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


def percentile(data: list[float], pct: float) -> float:
    """Linear interpolation between closest ranks. *data* must be sorted."""
    if not data:
        return 0.0
    k = (len(data) - 1) * (pct / 100.0)
    f = math.floor(k)
    c = math.ceil(k)
    if f == c or data[f] == data[c]:
        return data[f]
    return data[f] * (c - k) + data[c] * (k - f)


class Trend:
    """Running latency samples for one logical endpoint."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._samples: list[float] = []
        self._lock = threading.Lock()

    def add(self, duration_ms: float) -> None:
        with self._lock:
            self._samples.append(duration_ms)

    def summary(self) -> TrendSummary:
        with self._lock:
            data = sorted(self._samples)
        if not data:
            return TrendSummary()
        return TrendSummary(
            # fmean of identical values can drift by an ulp; clamp into range
            avg=min(max(statistics.fmean(data), data[0]), data[-1]),
            min=data[0],
            max=data[-1],
            p95=percentile(data, 95),
            count=len(data),
        )


class MetricsAggregator:
    """One ``Trend`` per endpoint, created up front for the whole run."""

    def __init__(self, endpoints: Iterable[str]) -> None:
        self._trends: dict[str, Trend] = {str(ep): Trend(str(ep)) for ep in endpoints}

    def record(self, endpoint: str, duration_ms: float) -> None:
        self._trends[str(endpoint)].add(duration_ms)

    def summary(self) -> dict[str, TrendSummary]:
        return {name: trend.summary() for name, trend in self._trends.items()}

    def endpoints(self) -> list[str]:
        return list(self._trends.keys())


@dataclass
class CheckCounts:
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails


@dataclass
class IterationCounts:
    completed: int = 0
    interrupted: int = 0
    errored: int = 0


class CheckTally:
    """Pass/fail counts per (scenario, check name) plus iteration outcomes."""

    def __init__(self) -> None:
        self._checks: dict[tuple[str, str], CheckCounts] = {}
        self._iterations: dict[str, IterationCounts] = {}
        self._lock = threading.Lock()

    def record(self, name: str, passed: bool, scenario: str = "") -> bool:
        with self._lock:
            counts = self._checks.setdefault((scenario, name), CheckCounts())
            if passed:
                counts.passes += 1
            else:
                counts.fails += 1
        return passed

    def record_iteration(self, scenario: str, outcome: str) -> None:
        """Count an iteration as ``completed``, ``interrupted`` or ``errored``."""
        with self._lock:
            counts = self._iterations.setdefault(scenario, IterationCounts())
            setattr(counts, outcome, getattr(counts, outcome) + 1)

    def counts(self, name: str, scenario: str = "") -> CheckCounts:
        with self._lock:
            found = self._checks.get((scenario, name), CheckCounts())
            return CheckCounts(found.passes, found.fails)

    def iterations(self, scenario: str) -> IterationCounts:
        with self._lock:
            found = self._iterations.get(scenario, IterationCounts())
            return IterationCounts(found.completed, found.interrupted, found.errored)

    @property
    def total_passes(self) -> int:
        with self._lock:
            return sum(c.passes for c in self._checks.values())

    @property
    def total_fails(self) -> int:
        with self._lock:
            return sum(c.fails for c in self._checks.values())

    @property
    def all_passed(self) -> bool:
        return self.total_fails == 0

    def summary(self) -> dict[str, dict[str, dict[str, int]]]:
        """Nested ``{scenario: {check: {passes, fails}}}`` view."""
        with self._lock:
            out: dict[str, dict[str, dict[str, int]]] = {}
            for (scenario, name), counts in sorted(self._checks.items()):
                out.setdefault(scenario, {})[name] = {
                    "passes": counts.passes,
                    "fails": counts.fails,
                }
            return out

    def iteration_summary(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {
                scenario: asdict(counts)
                for scenario, counts in sorted(self._iterations.items())
            }

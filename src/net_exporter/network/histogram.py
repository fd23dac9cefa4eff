"""
Per-host Histogram Store

Cumulative latency histograms keyed by host, updated concurrently by the
dialing threads and read by the export path.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple


def exponential_buckets(start: float, factor: float, count: int) -> List[float]:
    """
    Create ``count`` bucket upper bounds, the first equal to ``start`` and
    each following one ``factor`` times the previous.
    """
    if count < 1:
        raise ValueError("count must be a positive integer")
    if start <= 0:
        raise ValueError("start must be a positive number")
    if factor <= 1:
        raise ValueError("factor must be greater than 1")

    buckets = []
    for _ in range(count):
        buckets.append(start)
        start *= factor
    return buckets


@dataclass(frozen=True)
class HistogramSnapshot:
    """Immutable view of one histogram at a point in time."""
    count: int
    sum: float
    # (upper bound, cumulative count) in ascending bound order
    bucket_counts: Tuple[Tuple[float, int], ...]

    @property
    def buckets(self) -> Dict[float, int]:
        return dict(self.bucket_counts)


class Histogram:
    """
    Cumulative histogram with fixed bucket upper bounds.

    A sample increments every bucket whose upper bound is greater than or
    equal to it; the implicit +Inf bucket is the sample count.
    """

    def __init__(self, bucket_limits: Sequence[float]):
        self._limits = tuple(bucket_limits)
        self._lock = threading.Lock()
        self._count = 0
        self._sum = 0.0
        self._bucket_counts = [0] * len(self._limits)

    def add(self, sample: float):
        with self._lock:
            self._count += 1
            self._sum += sample
            for i, limit in enumerate(self._limits):
                if sample <= limit:
                    self._bucket_counts[i] += 1

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            return HistogramSnapshot(
                count=self._count,
                sum=self._sum,
                bucket_counts=tuple(zip(self._limits, self._bucket_counts)),
            )


class HistogramVec:
    """Thread-safe mapping from host to its latency histogram."""

    def __init__(self, bucket_limits: Sequence[float]):
        if not bucket_limits:
            raise ValueError("bucket_limits must not be empty")
        if list(bucket_limits) != sorted(set(bucket_limits)):
            raise ValueError("bucket_limits must be strictly increasing")

        self.bucket_limits = tuple(bucket_limits)
        self._lock = threading.Lock()
        self._histograms: Dict[str, Histogram] = {}

    def _get_or_create(self, host: str) -> Histogram:
        with self._lock:
            histogram = self._histograms.get(host)
            if histogram is None:
                histogram = Histogram(self.bucket_limits)
                self._histograms[host] = histogram
            return histogram

    def add(self, host: str, sample: float):
        """Record one sample for ``host``, creating its histogram if needed."""
        self._get_or_create(host).add(sample)

    def ensure(self, hosts: Iterable[str]):
        """Create an empty histogram for every host that has none yet."""
        for host in hosts:
            self._get_or_create(host)

    def histograms(self) -> Dict[str, HistogramSnapshot]:
        """Snapshot every known histogram."""
        with self._lock:
            items = list(self._histograms.items())
        return {host: histogram.snapshot() for host, histogram in items}

    def __len__(self) -> int:
        with self._lock:
            return len(self._histograms)

    def __contains__(self, host: str) -> bool:
        with self._lock:
            return host in self._histograms

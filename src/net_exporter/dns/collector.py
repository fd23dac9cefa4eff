"""
DNS Collector

Resolves a fixed list of names on every scrape and exposes how long each
resolution took. Nothing but the error counter outlives a scrape.
"""

import logging
import socket
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional

from prometheus_client import Counter
from prometheus_client.core import GaugeMetricFamily, Metric

from ..core.concurrency import fan_out
from ..core.exceptions import InvalidConfigError


logger = logging.getLogger(__name__)


METRIC_NAMESPACE = "dns"


def resolve_host(host: str) -> List[str]:
    """Resolve ``host`` with the system resolver and return its addresses."""
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    return sorted({info[4][0] for info in infos})


class DNSCollector:
    """Collector of per-name DNS resolution latency."""

    def __init__(
        self,
        hosts: List[str],
        resolver: Optional[Callable[[str], List[str]]] = None,
    ):
        if not hosts:
            raise InvalidConfigError("DNSCollector.hosts must not be empty")

        self.hosts = list(hosts)
        self.resolver = resolver or resolve_host

        self.error_count = Counter(
            f"{METRIC_NAMESPACE}_error_total",
            "Total number of errors resolving hosts.",
            ["host"],
            registry=None,
        )

    def _latency_family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(
            f"{METRIC_NAMESPACE}_latency_seconds",
            "Latency of the last DNS resolution.",
            labels=["host"],
        )

    def describe(self) -> Iterator[Metric]:
        yield self._latency_family()
        yield from self.error_count.describe()

    def collect(self) -> Iterator[Metric]:
        latencies = self.resolve_all()

        latency = self._latency_family()
        for host, seconds in sorted(latencies.items()):
            latency.add_metric([host], seconds)

        yield latency
        yield from self.error_count.collect()

    def resolve_all(self) -> Dict[str, float]:
        """Resolve every configured host; returns latency of the successful ones."""
        latencies: Dict[str, float] = {}
        lock = threading.Lock()

        def resolve(host: str):
            start = time.perf_counter()
            try:
                addresses = self.resolver(host)
            except OSError:
                logger.error(f"Could not resolve host {host}", exc_info=True)
                self.error_count.labels(host=host).inc()
                return
            elapsed = time.perf_counter() - start

            logger.debug(
                f"Resolved host {host} to {', '.join(addresses)}",
                extra={"extra_fields": {"host": host, "scrape_time": elapsed}},
            )
            with lock:
                latencies[host] = elapsed

        for host, error in fan_out(resolve, self.hosts, thread_name_prefix="dns"):
            if error is not None:
                logger.error(f"Unexpected error resolving host {host}", exc_info=error)
                self.error_count.labels(host=host).inc()

        return latencies

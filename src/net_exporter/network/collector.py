"""
Network Collector

Prometheus collector exposing TCP connect latency to the endpoints of a
Kubernetes service. Every scrape runs one collection cycle:

    IDLE -> RESOLVING -> PROBING -> AGGREGATING -> EXPORTING -> IDLE

Latency histograms accumulate across cycles and are never reset.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

from prometheus_client import Counter
from prometheus_client.core import HistogramMetricFamily, Metric
from prometheus_client.utils import floatToGoString

from ..core.exceptions import InvalidConfigError, ResolveError
from ..core.logging import ScrapeContext
from .histogram import HistogramVec, exponential_buckets
from .prober import Dialer, DialProber
from .resolver import EndpointResolver, Registry


logger = logging.getLogger(__name__)


METRIC_NAMESPACE = "network"

BUCKET_START = 0.001
BUCKET_FACTOR = 2
NUM_BUCKETS = 15


class CollectionState(str, Enum):
    """Phases of one collection cycle."""
    IDLE = "idle"
    RESOLVING = "resolving"
    PROBING = "probing"
    AGGREGATING = "aggregating"
    EXPORTING = "exporting"


@dataclass
class NetworkConfig:
    """Configuration for the network collector."""
    registry: Optional[Registry] = None
    dialer: Optional[Dialer] = None
    namespace: str = ""
    port: str = ""
    service: str = ""

    def validate(self):
        """Raise InvalidConfigError for any missing input."""
        if self.registry is None:
            raise InvalidConfigError("NetworkConfig.registry must not be empty")
        if self.dialer is None:
            raise InvalidConfigError("NetworkConfig.dialer must not be empty")
        if not self.namespace:
            raise InvalidConfigError("NetworkConfig.namespace must not be empty")
        if not self.port:
            raise InvalidConfigError("NetworkConfig.port must not be empty")
        if not self.service:
            raise InvalidConfigError("NetworkConfig.service must not be empty")


@dataclass
class ScrapeCycle:
    """Bookkeeping for one collection cycle."""
    scrape_id: int
    state: CollectionState = CollectionState.IDLE
    started_at: float = field(default_factory=time.perf_counter)
    targets: List[str] = field(default_factory=list)
    elapsed_seconds: Optional[float] = None
    exported_hosts: int = 0
    aborted: bool = False

    def transition(self, state: CollectionState):
        logger.debug(f"Scrape {self.scrape_id}: {self.state.value} -> {state.value}")
        self.state = state


class NetworkCollector:
    """
    Collector of per-host TCP connect latency.

    Register it into a ``prometheus_client.CollectorRegistry``; the error
    counters are owned by the collector and exported by its ``collect``.
    """

    def __init__(self, config: NetworkConfig):
        config.validate()
        self.config = config

        self.resolver = EndpointResolver(
            registry=config.registry,
            namespace=config.namespace,
            service=config.service,
            port=config.port,
        )
        self.latency_histograms = HistogramVec(
            exponential_buckets(BUCKET_START, BUCKET_FACTOR, NUM_BUCKETS)
        )

        self.error_count = Counter(
            f"{METRIC_NAMESPACE}_error_total",
            "Total number of internal errors.",
            registry=None,
        )
        self.dial_error_count = Counter(
            f"{METRIC_NAMESPACE}_dial_error_total",
            "Total number of errors dialing hosts.",
            ["host"],
            registry=None,
        )

        self.prober = DialProber(config.dialer, self.latency_histograms, self.dial_error_count)

        self._scrape_id = 0
        self._scrape_id_lock = threading.Lock()
        self.last_cycle: Optional[ScrapeCycle] = None

    def _latency_family(self) -> HistogramMetricFamily:
        return HistogramMetricFamily(
            f"{METRIC_NAMESPACE}_latency_seconds",
            "Histogram of latency of network dials.",
            labels=["host"],
        )

    def _next_scrape_id(self) -> int:
        with self._scrape_id_lock:
            self._scrape_id += 1
            return self._scrape_id

    @property
    def scrape_id(self) -> int:
        """Identifier of the most recently started cycle."""
        return self._scrape_id

    def describe(self) -> Iterator[Metric]:
        yield self._latency_family()
        yield from self.error_count.describe()
        yield from self.dial_error_count.describe()

    def collect(self) -> Iterator[Metric]:
        yield from self.run_cycle()
        yield from self.error_count.collect()
        yield from self.dial_error_count.collect()

    def run_cycle(self) -> List[Metric]:
        """
        Run one collection cycle.

        Returns the latency histogram family, or an empty list when the
        cycle was aborted because the targets could not be resolved.
        """
        cycle = ScrapeCycle(scrape_id=self._next_scrape_id())

        with ScrapeContext(cycle.scrape_id):
            logger.info("Collecting metrics")
            try:
                families = self._run_cycle(cycle)
            finally:
                cycle.elapsed_seconds = time.perf_counter() - cycle.started_at
                cycle.transition(CollectionState.IDLE)
                self.last_cycle = cycle

            logger.info(
                f"Collected metrics in {cycle.elapsed_seconds:.4f}s",
                extra={"extra_fields": {"scrape_time": cycle.elapsed_seconds}},
            )
        return families

    def _run_cycle(self, cycle: ScrapeCycle) -> List[Metric]:
        cycle.transition(CollectionState.RESOLVING)
        try:
            cycle.targets = self.resolver.resolve()
        except ResolveError as e:
            logger.error(f"Aborting scrape: {e}", exc_info=True)
            self.error_count.inc()
            cycle.aborted = True
            return []

        cycle.transition(CollectionState.PROBING)
        self.prober.probe(cycle.targets)

        cycle.transition(CollectionState.AGGREGATING)
        self.latency_histograms.ensure(cycle.targets)

        cycle.transition(CollectionState.EXPORTING)
        snapshot = self.latency_histograms.histograms()
        latency = self._latency_family()
        for host, histogram in sorted(snapshot.items()):
            buckets = [
                (floatToGoString(limit), count) for limit, count in histogram.bucket_counts
            ]
            buckets.append(("+Inf", histogram.count))
            latency.add_metric([host], buckets=buckets, sum_value=histogram.sum)
        cycle.exported_hosts = len(snapshot)
        return [latency]

"""
Concurrent Dial Prober

Measures TCP connect latency to every target of a cycle, one thread per
target, and folds the results into the histogram store or the dial error
counter.
"""

import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, List

from prometheus_client import Counter

from ..core.concurrency import fan_out
from ..core.exceptions import DialError
from .histogram import HistogramVec


logger = logging.getLogger(__name__)


@dataclass
class Dialer:
    """TCP dialer with a fixed per-attempt timeout."""
    timeout: float = 5.0
    # Probe connections are closed right after connect
    keep_alive: bool = False

    def dial(self, address: str) -> socket.socket:
        """
        Open a TCP connection to ``address`` (``host:port``).

        Raises:
            DialError: the address is malformed, or the connect failed or
                timed out.
        """
        host, sep, port = address.rpartition(":")
        if not sep or not host or not port:
            raise DialError(address, "missing port in address")

        try:
            conn = socket.create_connection((host.strip("[]"), port), timeout=self.timeout)
        except OSError as e:
            raise DialError(address) from e

        if not self.keep_alive:
            try:
                conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 0)
            except OSError as e:
                conn.close()
                raise DialError(address) from e
        return conn


class DialProber:
    """Dial every target concurrently and record one outcome per target."""

    def __init__(
        self,
        dialer: Dialer,
        histograms: HistogramVec,
        dial_errors: Counter,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.dialer = dialer
        self.histograms = histograms
        self.dial_errors = dial_errors
        self.clock = clock

    def _probe_host(self, host: str):
        start = self.clock()
        try:
            conn = self.dialer.dial(host)
        except DialError:
            logger.error(
                f"Could not dial host {host}",
                exc_info=True,
                extra={"extra_fields": {"host": host}},
            )
            self.dial_errors.labels(host=host).inc()
            return

        with conn:
            elapsed = self.clock() - start

        logger.info(
            f"Dialed host {host} in {elapsed:.4f}s",
            extra={"extra_fields": {"host": host, "scrape_time": elapsed}},
        )
        self.histograms.add(host, elapsed)

    def probe(self, targets: List[str]):
        """Probe all targets; returns once every dial has finished."""
        for host, error in fan_out(self._probe_host, targets, thread_name_prefix="dial"):
            if error is not None:
                logger.error(
                    f"Unexpected error probing host {host}",
                    exc_info=error,
                    extra={"extra_fields": {"host": host}},
                )
                self.dial_errors.labels(host=host).inc()

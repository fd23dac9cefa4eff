#!/usr/bin/env python3
"""
One-shot Probe Script

Run a single network collection cycle against the configured service and
print the Prometheus text exposition. Useful for checking a deployment's
discovery and reachability without a Prometheus server.

Usage:
    python scripts/probe_once.py --namespace monitoring --service net-exporter --port 8000
    python scripts/probe_once.py --api-url http://127.0.0.1:8001 --service kube-dns --port 53
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prometheus_client import CollectorRegistry, generate_latest  # noqa: E402

from net_exporter.core.config import KubernetesConfig  # noqa: E402
from net_exporter.core.exceptions import InvalidConfigError  # noqa: E402
from net_exporter.discovery.kubernetes import KubernetesRegistry  # noqa: E402
from net_exporter.network.collector import NetworkCollector, NetworkConfig  # noqa: E402
from net_exporter.network.prober import Dialer  # noqa: E402


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Run one network collection cycle")
    parser.add_argument("--namespace", default="monitoring")
    parser.add_argument("--service", default="net-exporter")
    parser.add_argument("--port", default="8000")
    parser.add_argument("--dial-timeout", type=float, default=5.0)
    parser.add_argument(
        "--api-url",
        default=None,
        help="Kubernetes API URL, e.g. from `kubectl proxy` (default: in-cluster)",
    )
    args = parser.parse_args()

    try:
        registry = KubernetesRegistry.from_in_cluster(KubernetesConfig(api_url=args.api_url))
    except InvalidConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        collector = NetworkCollector(
            NetworkConfig(
                registry=registry,
                dialer=Dialer(timeout=args.dial_timeout),
                namespace=args.namespace,
                port=args.port,
                service=args.service,
            )
        )
        metrics_registry = CollectorRegistry()
        metrics_registry.register(collector)

        sys.stdout.write(generate_latest(metrics_registry).decode())
    except InvalidConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    finally:
        registry.close()

    if collector.last_cycle is not None and collector.last_cycle.aborted:
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
net-exporter API

FastAPI application exposing the network and DNS collectors to Prometheus.
"""

import argparse
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from .. import __version__
from ..core.config import Settings, build_settings, get_settings, load_config_file
from ..core.logging import setup_logging
from ..discovery.kubernetes import KubernetesRegistry
from ..dns.collector import DNSCollector
from ..network.collector import NetworkCollector, NetworkConfig
from ..network.prober import Dialer
from ..network.resolver import Registry
from .schemas import HealthResponse, ReadyResponse, ScrapeInfo


logger = logging.getLogger(__name__)


# Global state
class AppState:
    metrics_registry: Optional[CollectorRegistry] = None
    network_collector: Optional[NetworkCollector] = None
    # Discovery client created by build_exporter, closed on shutdown
    kubernetes_registry: Optional[KubernetesRegistry] = None
    start_time: datetime = datetime.now(timezone.utc)


state = AppState()


def build_exporter(
    settings: Settings,
    registry: Optional[Registry] = None,
) -> CollectorRegistry:
    """
    Create the collectors described by ``settings`` and register them into a
    fresh CollectorRegistry. The result is also installed as the app state.

    Raises:
        InvalidConfigError: a required input is missing.
    """
    kubernetes_registry = None
    if registry is None:
        kubernetes_registry = KubernetesRegistry.from_in_cluster(settings.kubernetes)
        registry = kubernetes_registry

    try:
        network_collector = NetworkCollector(
            NetworkConfig(
                registry=registry,
                dialer=Dialer(timeout=settings.dial_timeout_seconds, keep_alive=False),
                namespace=settings.namespace,
                port=settings.port,
                service=settings.service,
            )
        )
        dns_collector = DNSCollector(settings.host_list)
    except Exception:
        if kubernetes_registry is not None:
            kubernetes_registry.close()
        raise

    metrics_registry = CollectorRegistry()
    metrics_registry.register(dns_collector)
    metrics_registry.register(network_collector)

    state.metrics_registry = metrics_registry
    state.network_collector = network_collector
    close_registry()
    state.kubernetes_registry = kubernetes_registry

    logger.info(
        f"Probing service {settings.namespace}/{settings.service} on port {settings.port}, "
        f"resolving {len(settings.host_list)} DNS hosts"
    )
    return metrics_registry


def close_registry():
    """Close the discovery client owned by the app, if any."""
    if state.kubernetes_registry is not None:
        state.kubernetes_registry.close()
        state.kubernetes_registry = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting net-exporter...")

    if state.metrics_registry is None:
        build_exporter(get_settings())

    yield

    logger.info("Shutting down...")
    close_registry()


app = FastAPI(
    title="net-exporter",
    description="TCP connect and DNS resolution latency exporter",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    now = datetime.now(timezone.utc)
    return HealthResponse(
        status="healthy",
        timestamp=now,
        uptime_seconds=(now - state.start_time).total_seconds(),
        version=__version__,
    )


@app.get("/ready", response_model=ReadyResponse)
async def readiness_check():
    """Readiness check for Kubernetes."""
    if state.metrics_registry is None:
        raise HTTPException(status_code=503, detail="Collectors not registered")

    last_scrape = None
    cycle = state.network_collector.last_cycle if state.network_collector else None
    if cycle is not None:
        last_scrape = ScrapeInfo(
            scrape_id=cycle.scrape_id,
            state=cycle.state.value,
            aborted=cycle.aborted,
            targets=len(cycle.targets),
            exported_hosts=cycle.exported_hosts,
            elapsed_seconds=cycle.elapsed_seconds,
        )
    return ReadyResponse(status="ready", last_scrape=last_scrape)


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint. Each request runs one collection cycle."""
    if state.metrics_registry is None:
        raise HTTPException(status_code=503, detail="Collectors not registered")
    return Response(
        content=generate_latest(state.metrics_registry),
        media_type=CONTENT_TYPE_LATEST,
    )


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="net-exporter",
        description="Export TCP connect and DNS resolution latency to Prometheus.",
    )
    parser.add_argument("--hosts", help="DNS hosts to resolve, comma separated")
    parser.add_argument("--namespace", help="Namespace of the probed service")
    parser.add_argument("--port", help="Port of the probed service")
    parser.add_argument("--service", help="Name of the probed service")
    parser.add_argument("--dial-timeout", type=float, help="Per-dial timeout in seconds")
    parser.add_argument("--listen-host", help="Bind address of the metrics server")
    parser.add_argument("--listen-port", type=int, help="Bind port of the metrics server")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--log-json", action="store_true", default=None, help="Log as JSON")
    parser.add_argument("--config", help="YAML file with settings overrides")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Merge, by increasing precedence, environment, config file and flags."""
    overrides: Dict[str, Any] = load_config_file(args.config)

    flags = {
        "hosts": args.hosts,
        "namespace": args.namespace,
        "port": args.port,
        "service": args.service,
        "dial_timeout_seconds": args.dial_timeout,
        "log_level": args.log_level,
        "log_json": args.log_json,
    }
    overrides.update({key: value for key, value in flags.items() if value is not None})

    api_flags = {"host": args.listen_host, "port": args.listen_port}
    api_overrides = {key: value for key, value in api_flags.items() if value is not None}
    if api_overrides:
        overrides["api"] = {**(overrides.get("api") or {}), **api_overrides}

    return build_settings(overrides)


def main(argv: Optional[List[str]] = None):
    """Console entry point."""
    import uvicorn

    args = parse_args(argv)
    settings = settings_from_args(args)

    setup_logging(level=settings.log_level, json_format=settings.log_json)
    build_exporter(settings)

    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_config=None)


if __name__ == "__main__":
    main()

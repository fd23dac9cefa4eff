"""
Endpoint Resolver

Turns a registry service into the list of ``host:port`` targets probed
during one collection cycle.
"""

import logging
from typing import List, Protocol

from ..core.exceptions import ResolveError


logger = logging.getLogger(__name__)


class Registry(Protocol):
    """Read-only service registry lookups."""

    def get_service_address(self, namespace: str, name: str) -> str:
        """Return the stable cluster address of a service."""
        ...

    def get_endpoint_addresses(self, namespace: str, name: str) -> List[str]:
        """Return the addresses of the service's ready backing endpoints."""
        ...


class EndpointResolver:
    """Resolve a service to its cluster address plus its endpoint addresses."""

    def __init__(self, registry: Registry, namespace: str, service: str, port: str):
        self.registry = registry
        self.namespace = namespace
        self.service = service
        self.port = port

    def _target(self, address: str) -> str:
        return f"{address}:{self.port}"

    def resolve(self) -> List[str]:
        """
        Build this cycle's targets: the service address first, then every
        endpoint address, all combined with the configured port.

        Raises:
            ResolveError: either registry lookup failed, whatever the
                registry raised. No retry is made.
        """
        try:
            cluster_address = self.registry.get_service_address(self.namespace, self.service)
        except Exception as e:
            raise ResolveError(
                f"could not get service {self.namespace}/{self.service}"
            ) from e

        logger.info(f"Collected service {self.namespace}/{self.service}")
        targets = [self._target(cluster_address)]

        logger.info(f"Getting endpoints of service {self.namespace}/{self.service}")
        try:
            endpoint_addresses = self.registry.get_endpoint_addresses(self.namespace, self.service)
        except Exception as e:
            raise ResolveError(
                f"could not get endpoints {self.namespace}/{self.service}"
            ) from e

        logger.info(
            f"Collected {len(endpoint_addresses)} endpoints of service "
            f"{self.namespace}/{self.service}"
        )
        targets.extend(self._target(address) for address in endpoint_addresses)

        return targets

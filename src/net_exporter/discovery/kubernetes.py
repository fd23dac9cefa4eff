"""
Kubernetes Service Registry

Reads services and endpoints from the Kubernetes REST API with httpx.
Only the two lookups the network collector needs are implemented.
"""

import logging
import os
import ssl
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from ..core.config import KubernetesConfig
from ..core.exceptions import InvalidConfigError, RegistryError


logger = logging.getLogger(__name__)


class KubernetesRegistry:
    """
    Registry backed by the Kubernetes API server.

    Use ``from_in_cluster`` inside a pod; pass ``api_url`` and ``token``
    directly (or a prepared ``httpx.Client``) elsewhere.
    """

    def __init__(
        self,
        api_url: str = "",
        token: Optional[str] = None,
        verify: Union[ssl.SSLContext, bool] = True,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        if client is None:
            if not api_url:
                raise InvalidConfigError("KubernetesRegistry.api_url must not be empty")
            headers = {"Accept": "application/json"}
            if token:
                headers["Authorization"] = f"Bearer {token}"
            client = httpx.Client(
                base_url=api_url,
                headers=headers,
                verify=verify,
                timeout=timeout,
            )
        self._client = client

    @classmethod
    def from_in_cluster(cls, config: Optional[KubernetesConfig] = None) -> "KubernetesRegistry":
        """
        Build a registry from the pod's service account.

        Raises:
            InvalidConfigError: not running inside a cluster and no API URL
                was configured, or the service account token is unreadable.
        """
        config = config or KubernetesConfig()

        api_url = config.api_url
        if not api_url:
            host = os.environ.get("KUBERNETES_SERVICE_HOST")
            port = os.environ.get("KUBERNETES_SERVICE_PORT")
            if not host or not port:
                raise InvalidConfigError(
                    "unable to load in-cluster configuration, "
                    "KUBERNETES_SERVICE_HOST and KUBERNETES_SERVICE_PORT must be defined"
                )
            if ":" in host:
                host = f"[{host}]"
            api_url = f"https://{host}:{port}"

        token_path = Path(config.token_path)
        token = None
        if token_path.exists():
            token = token_path.read_text().strip()
        elif not config.api_url:
            raise InvalidConfigError(f"service account token not found at {token_path}")

        ca_path = Path(config.ca_path)
        verify: Union[ssl.SSLContext, bool] = True
        if ca_path.exists():
            verify = ssl.create_default_context(cafile=str(ca_path))

        logger.info(f"Using Kubernetes API at {api_url}")
        return cls(
            api_url=api_url,
            token=token,
            verify=verify,
            timeout=config.request_timeout_seconds,
        )

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            response = self._client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"GET {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise RegistryError(f"GET {path} returned invalid JSON") from e

    def get_service_address(self, namespace: str, name: str) -> str:
        service = self._get(f"/api/v1/namespaces/{namespace}/services/{name}")
        try:
            cluster_ip = service["spec"]["clusterIP"]
        except (KeyError, TypeError) as e:
            raise RegistryError(f"service {namespace}/{name} has no clusterIP") from e
        if not cluster_ip:
            raise RegistryError(f"service {namespace}/{name} has no clusterIP")
        return cluster_ip

    def get_endpoint_addresses(self, namespace: str, name: str) -> List[str]:
        endpoints = self._get(f"/api/v1/namespaces/{namespace}/endpoints/{name}")
        try:
            return [
                address["ip"]
                for subset in endpoints.get("subsets") or []
                for address in subset.get("addresses") or []
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryError(f"endpoints {namespace}/{name} are malformed") from e

    def close(self):
        self._client.close()

"""
Configuration management for net-exporter.

This module handles configuration loading from environment variables,
an optional YAML file and command-line overrides, providing a centralized
configuration interface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class KubernetesConfig(BaseSettings):
    """Kubernetes API access used for service discovery."""

    model_config = SettingsConfigDict(
        env_prefix="NET_EXPORTER_KUBERNETES_", env_file=".env", extra="ignore"
    )

    # Unset means in-cluster discovery through KUBERNETES_SERVICE_HOST/PORT
    api_url: Optional[str] = None
    token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    ca_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
    request_timeout_seconds: float = Field(default=10.0, gt=0)


class APIConfig(BaseSettings):
    """Exposition server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NET_EXPORTER_API_", env_file=".env", extra="ignore"
    )

    host: str = "0.0.0.0"
    port: int = 8000


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="NET_EXPORTER_", env_file=".env", extra="ignore"
    )

    app_name: str = "net-exporter"
    log_level: str = "INFO"
    log_json: bool = False

    # Network collector
    namespace: str = "monitoring"
    port: str = "8000"
    service: str = "net-exporter"
    dial_timeout_seconds: float = Field(default=5.0, gt=0)

    # DNS collector, comma separated
    hosts: str = "giantswarm.io,kubernetes.default.svc.cluster.local"

    # Sub-configurations
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("namespace", "port", "service")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @property
    def host_list(self) -> List[str]:
        """DNS hosts to resolve."""
        return [host.strip() for host in self.hosts.split(",") if host.strip()]


_NESTED = {"kubernetes": KubernetesConfig, "api": APIConfig}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load settings overrides from a YAML file."""
    if not config_path:
        return {}
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping at the top level")
    return data


def build_settings(overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Build settings with explicit overrides on top of the environment.

    Nested sections (``kubernetes``, ``api``) are given as dictionaries; keys
    missing from an override section still come from the environment.
    """
    overrides = dict(overrides or {})
    for key, config_cls in _NESTED.items():
        section = overrides.get(key)
        if isinstance(section, dict):
            overrides[key] = config_cls(**section)
    return Settings(**overrides)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

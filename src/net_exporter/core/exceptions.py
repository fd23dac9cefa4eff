"""
Exceptions

Error taxonomy shared by the collectors, the registry clients and the API.
"""


class NetExporterError(Exception):
    """Base class for all exporter errors."""


class InvalidConfigError(NetExporterError):
    """A required construction input is missing or empty."""


class RegistryError(NetExporterError):
    """A service registry lookup failed."""


class ResolveError(NetExporterError):
    """The target list for a collection cycle could not be built."""


class DialError(NetExporterError):
    """A TCP connect to a single target failed or timed out."""

    def __init__(self, host: str, message: str = "could not dial host"):
        super().__init__(f"{message}: {host}")
        self.host = host

"""
API Schemas

Pydantic models for the exporter's JSON endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Current timestamp")
    uptime_seconds: float = Field(..., description="Uptime in seconds")
    version: str = Field(..., description="Exporter version")


class ScrapeInfo(BaseModel):
    """Summary of the last network collection cycle."""

    scrape_id: int = Field(..., description="Identifier of the cycle")
    state: str = Field(..., description="State the cycle ended in")
    aborted: bool = Field(default=False, description="Targets could not be resolved")
    targets: int = Field(default=0, description="Targets probed")
    exported_hosts: int = Field(default=0, description="Hosts with an exported histogram")
    elapsed_seconds: Optional[float] = Field(default=None, description="Cycle duration")


class ReadyResponse(BaseModel):
    """Response schema for readiness check."""

    status: str = Field(..., description="Readiness status")
    last_scrape: Optional[ScrapeInfo] = Field(default=None, description="Last network scrape")

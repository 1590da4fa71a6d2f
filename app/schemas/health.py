"""Pydantic schema for the health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus database reachability, for load balancers and monitoring."""

    status: Literal["ok"] = "ok"
    service: str = Field(default="ecommerce-api", description="Service name")
    environment: Literal["dev", "prod"]
    database: Literal["connected", "disconnected"]

"""Health check response."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus credential store reachability; 'degraded' when the store is down."""

    status: Literal["ok", "degraded"]
    environment: str
    version: str
    database: Literal["connected", "disconnected"] = Field(
        description="Result of a trivial query against the credential store",
    )

"""Health check endpoint for load balancers and monitoring."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from app.core.config import Settings, get_settings
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """
    Report whether the app's database handle can reach the store.
    Answers 503 while it cannot, so load balancers take the instance out.
    """
    connected = request.app.state.database.ping()
    if not connected:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        version=request.app.version,
        database="connected" if connected else "disconnected",
    )

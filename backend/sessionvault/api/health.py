"""Health check endpoint: database connectivity and cleanup scheduler state."""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from sessionvault.core import check_db_connection, settings
from sessionvault.services.token_cleanup import RefreshTokenCleanupService

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    token_cleanup: str


def _cleanup_state() -> str:
    service = RefreshTokenCleanupService.current_instance()
    if service is None:
        return "not_started"
    return "running" if service.is_running else "stopped"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        status.HTTP_200_OK: {"description": "Service is healthy"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database is unreachable"},
    },
)
async def health_check(response: Response) -> HealthResponse:
    """Report liveness. Only the database decides the status code.

    A stopped cleanup scheduler delays reclamation of expired tokens but
    does not affect issuing or validation, so it is reported, not failed on.
    """
    db_healthy = await check_db_connection()
    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        token_cleanup=_cleanup_state(),
    )

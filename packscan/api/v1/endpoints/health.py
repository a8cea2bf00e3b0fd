from datetime import datetime

from fastapi import APIRouter, Depends, Request

from ....core.dependencies import health_check_dependencies
from ....schemas import HealthCheckResponse

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    request: Request,
    health_status: dict = Depends(health_check_dependencies)
):
    """
    Health check endpoint to verify service status.
    """
    return HealthCheckResponse(
        status=health_status["status"],
        services=health_status["services"],
        timestamp=datetime.utcnow(),
        version=request.app.version
    )


@router.get("/liveness")
async def liveness_check():
    """
    Liveness check endpoint.
    """
    return {"status": "alive", "timestamp": datetime.utcnow()}

from typing import AsyncGenerator
import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .security import InvalidTokenError, verify_access_token
from ..db.database import DatabaseManager
from ..services.analysis import PackagingAnalyzer
from ..services.storage import ImageStore


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_dependency(request: Request) -> Settings:
    """Get the settings the application was built with."""
    return request.app.state.settings


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db


async def get_database_session(
    db_manager: DatabaseManager = Depends(get_db_manager)
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in db_manager.session():
        yield session


def get_analyzer(request: Request) -> PackagingAnalyzer:
    return request.app.state.analyzer


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings_dependency)
) -> str:
    """Resolve the user behind the bearer token, or answer 401."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return verify_access_token(credentials.credentials, settings.secret_key)
    except InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def health_check_dependencies(
    request: Request,
    db_manager: DatabaseManager = Depends(get_db_manager)
) -> dict:
    """Perform health checks on all dependencies."""
    health_status = {
        "status": "healthy",
        "services": {}
    }

    try:
        await db_manager.ping()
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["services"]["database"] = "unhealthy"
        health_status["status"] = "unhealthy"

    analyzer: PackagingAnalyzer = request.app.state.analyzer
    health_status["services"]["ai_gateway"] = "configured" if analyzer.gateway.is_configured else "not configured"

    return health_status

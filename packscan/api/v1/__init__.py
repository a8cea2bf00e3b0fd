from fastapi import APIRouter
from .endpoints import analyze, guide, health, saved, storage

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(analyze.router, prefix="/analyze", tags=["analysis"])
api_router.include_router(saved.router, prefix="/saved", tags=["saved"])
api_router.include_router(storage.router, prefix="/storage", tags=["storage"])
api_router.include_router(guide.router, prefix="/guide", tags=["guide"])

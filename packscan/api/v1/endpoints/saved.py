import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from .... import crud
from ....core.config import Settings
from ....core.dependencies import (
    get_current_user_id,
    get_database_session,
    get_image_store,
    get_settings_dependency,
)
from ....core.security import build_signed_url
from ....db.models import SavedAnalysis
from ....schemas import SaveAnalysisRequest, SavedAnalysisResponse
from ....services.storage import ImageStore, StorageError

logger = logging.getLogger(__name__)
router = APIRouter()


def to_response(analysis: SavedAnalysis, settings: Settings) -> SavedAnalysisResponse:
    return SavedAnalysisResponse(
        id=analysis.id,
        image_path=analysis.image_path,
        image_url=build_signed_url(analysis.image_path, settings.secret_key, settings.signed_url_ttl),
        materials=analysis.materials or [],
        overall_analysis=analysis.overall_analysis,
        created_at=analysis.created_at,
    )


@router.post("", response_model=SavedAnalysisResponse, response_model_by_alias=True,
             status_code=status.HTTP_201_CREATED)
async def save_analysis(
    body: SaveAnalysisRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_database_session),
    store: ImageStore = Depends(get_image_store),
    settings: Settings = Depends(get_settings_dependency)
):
    """
    Save an analysis and its source image for the current user.
    """
    try:
        image_path = store.save(user_id, body.image_base64)
    except StorageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    try:
        analysis = await crud.create_saved_analysis(
            db,
            user_id=user_id,
            image_path=image_path,
            materials=[m.to_dict() for m in body.materials],
            overall_analysis=body.overall_analysis,
        )
    except Exception as e:
        logger.error(f"Failed to save analysis for {user_id}: {e}")
        store.delete(image_path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save analysis"
        )

    logger.info(f"Saved analysis {analysis.id} for user {user_id}")
    return to_response(analysis, settings)


@router.get("", response_model=List[SavedAnalysisResponse], response_model_by_alias=True)
async def list_saved_analyses(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_database_session),
    settings: Settings = Depends(get_settings_dependency)
):
    """
    List the current user's saved analyses, newest first.
    """
    analyses = await crud.get_saved_analyses(db, user_id, skip=skip, limit=limit)
    return [to_response(a, settings) for a in analyses]


@router.get("/{analysis_id}", response_model=SavedAnalysisResponse, response_model_by_alias=True)
async def get_saved_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_database_session),
    settings: Settings = Depends(get_settings_dependency)
):
    """
    Get one of the current user's saved analyses.
    """
    analysis = await crud.get_saved_analysis(db, user_id, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Saved analysis {analysis_id} not found")
    return to_response(analysis, settings)


@router.delete("/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_analysis(
    analysis_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_database_session),
    store: ImageStore = Depends(get_image_store)
):
    """
    Delete a saved analysis together with its stored image.
    """
    analysis = await crud.get_saved_analysis(db, user_id, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Saved analysis {analysis_id} not found")

    image_path = analysis.image_path
    await crud.delete_saved_analysis(db, user_id, analysis_id)
    try:
        store.delete(image_path)
    except (OSError, StorageError) as e:
        logger.warning(f"Deleted analysis {analysis_id} but could not remove {image_path}: {e}")
    logger.info(f"Deleted analysis {analysis_id} for user {user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import models


async def create_saved_analysis(
    db: AsyncSession,
    user_id: str,
    image_path: str,
    materials: List[Dict[str, Any]],
    overall_analysis: Optional[str] = None
) -> models.SavedAnalysis:
    db_analysis = models.SavedAnalysis(
        user_id=user_id,
        image_path=image_path,
        materials=materials,
        overall_analysis=overall_analysis,
    )
    db.add(db_analysis)
    await db.commit()
    await db.refresh(db_analysis)
    return db_analysis


async def get_saved_analyses(db: AsyncSession, user_id: str, skip: int = 0, limit: int = 100) -> List[models.SavedAnalysis]:
    result = await db.execute(
        select(models.SavedAnalysis)
        .where(models.SavedAnalysis.user_id == user_id)
        .order_by(models.SavedAnalysis.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_saved_analysis(db: AsyncSession, user_id: str, analysis_id: str) -> Optional[models.SavedAnalysis]:
    result = await db.execute(
        select(models.SavedAnalysis).where(
            models.SavedAnalysis.id == analysis_id,
            models.SavedAnalysis.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def delete_saved_analysis(db: AsyncSession, user_id: str, analysis_id: str) -> bool:
    result = await db.execute(
        delete(models.SavedAnalysis).where(
            models.SavedAnalysis.id == analysis_id,
            models.SavedAnalysis.user_id == user_id,
        )
    )
    await db.commit()
    return result.rowcount > 0

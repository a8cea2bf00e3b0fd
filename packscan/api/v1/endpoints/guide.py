from typing import List

from fastapi import APIRouter

from ....guide import MATERIALS_GUIDE, RESIN_CODES
from ....schemas import GuideEntry, ResinCode

router = APIRouter()


@router.get("/materials", response_model=List[GuideEntry], response_model_by_alias=True)
async def materials_guide():
    """
    Packaging materials guide: recyclability, biodegradability and disposal tips.
    """
    return MATERIALS_GUIDE


@router.get("/resin-codes", response_model=List[ResinCode], response_model_by_alias=True)
async def resin_codes():
    """
    Resin identification codes 1-7.
    """
    return [RESIN_CODES[code] for code in sorted(RESIN_CODES)]

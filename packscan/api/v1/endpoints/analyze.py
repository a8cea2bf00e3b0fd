import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ....core.dependencies import get_analyzer
from ....schemas import AnalyzeRequest, ErrorResponse
from ....services.ai_gateway import GatewayError
from ....services.analysis import AnalysisError, MissingImageError, PackagingAnalyzer
from ....services.storage import encode_data_url

logger = logging.getLogger(__name__)
router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or unusable image"},
    402: {"model": ErrorResponse, "description": "AI credits exhausted"},
    429: {"model": ErrorResponse, "description": "Rate limited by the AI gateway"},
    500: {"model": ErrorResponse, "description": "Upstream or configuration failure"},
}

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


async def run_analysis(analyzer: PackagingAnalyzer, image, generate_structure_images=None) -> dict:
    """Run the pipeline and translate its errors into HTTP errors."""
    try:
        result = await analyzer.analyze(image, generate_structure_images=generate_structure_images)
    except (AnalysisError, GatewayError) as e:
        logger.error(f"Error in analyze-packaging: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return result.to_dict()


@router.post("", responses=ERROR_RESPONSES)
async def analyze_packaging(
    body: AnalyzeRequest,
    analyzer: PackagingAnalyzer = Depends(get_analyzer)
):
    """
    Identify the packaging materials in an image sent as a data URL.
    """
    if not body.image_base64 or not body.image_base64.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MissingImageError().message)
    return await run_analysis(analyzer, body.image_base64, body.generate_structure_images)


@router.post("/upload", responses=ERROR_RESPONSES)
async def analyze_packaging_upload(
    file: UploadFile = File(...),
    analyzer: PackagingAnalyzer = Depends(get_analyzer)
):
    """
    Identify the packaging materials in an uploaded image file.
    """
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MissingImageError().message)
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image exceeds the 10MB limit")

    return await run_analysis(analyzer, encode_data_url(contents, file.content_type))

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from ....core.config import Settings
from ....core.dependencies import get_image_store, get_settings_dependency
from ....core.security import verify_signed_path
from ....services.storage import ImageStore, StorageError

router = APIRouter()


@router.get("/{object_path:path}")
async def get_stored_image(
    object_path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    store: ImageStore = Depends(get_image_store),
    settings: Settings = Depends(get_settings_dependency)
):
    """
    Serve a stored image through a signed, time-limited URL.
    """
    if not verify_signed_path(object_path, expires, signature, settings.secret_key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired signature")

    try:
        path = store.path_for(object_path)
    except (FileNotFoundError, StorageError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    return FileResponse(path, media_type=store.media_type(object_path))

"""Image upload route."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from event_manager.models.user import User
from event_manager.security import get_current_user
from event_manager.services.upload_service import ImageStorage, get_image_storage, validate_image

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/image")
def upload_image(
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
):
    """Store an event image and return its public URL."""
    if image is None or not image.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image file provided")

    ext = validate_image(image)
    url = storage.upload(image, ext, owner=current_user.name)
    return {"url": url}

"""
Review image endpoints: upload, SAS access URL, existence check and deletion.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, File, Query, Request, UploadFile, status

from ...adapters.storage.models import UploadedImage
from ..deps import AdminIdentityDep, BlobStorageServiceDep, CurrentIdentityDep
from ..errors import ImageNotFoundError
from ..schemas.common import ApiResponse
from ..schemas.images import (
    AccessUrlResponse,
    DeleteResponse,
    ExistsResponse,
    StoredImageResponse,
)
from ..utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


async def read_upload(file: UploadFile, max_bytes: int) -> UploadedImage:
    """
    Read a multipart upload into memory, at most ``max_bytes + 1`` bytes.

    The extra byte is enough for the size check to reject oversized files
    without buffering the rest of the body.
    """
    data = await file.read(max_bytes + 1)
    return UploadedImage(filename=file.filename, content_type=file.content_type, data=data)


@router.post(
    "",
    response_model=ApiResponse[StoredImageResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_image(
    request: Request,
    blob_service: BlobStorageServiceDep,
    identity: CurrentIdentityDep,
    file: UploadFile = File(...),
):
    """
    Upload a review image.

    Returns the blob URL without SAS token; store it and ask for an access
    URL each time the image has to be displayed.
    """
    image = await read_upload(file, blob_service.settings.max_file_size_bytes)
    logger.info(f"Image upload by {identity.principal}: filename={image.filename}, size={image.size} bytes")
    blob_url = await blob_service.store_file(image)
    return ok(request, data=StoredImageResponse(blob_url=blob_url), message="Image uploaded")


@router.get("/access-url", response_model=ApiResponse[AccessUrlResponse])
async def get_access_url(
    request: Request,
    blob_service: BlobStorageServiceDep,
    blob_url: str = Query(..., min_length=1),
    validity_minutes: Optional[int] = Query(None, ge=1, le=7 * 24 * 60),
):
    """Issue a time-limited read URL for a stored image."""
    validity = timedelta(minutes=validity_minutes) if validity_minutes else None
    url = await blob_service.generate_sas_url(blob_url, validity)
    if url is None:
        raise ImageNotFoundError(blob_url)

    if validity_minutes is None:
        validity_minutes = blob_service.settings.sas_token_validity_hours * 60
    return ok(request, data=AccessUrlResponse(url=url, validity_minutes=validity_minutes))


@router.get("/exists", response_model=ApiResponse[ExistsResponse])
async def image_exists(
    request: Request,
    blob_service: BlobStorageServiceDep,
    blob_url: str = Query(..., min_length=1),
):
    exists = await blob_service.file_exists(blob_url)
    return ok(request, data=ExistsResponse(exists=exists))


@router.delete("", response_model=ApiResponse[DeleteResponse])
async def delete_image(
    request: Request,
    blob_service: BlobStorageServiceDep,
    identity: AdminIdentityDep,
    blob_url: str = Query(..., min_length=1),
):
    """Delete a stored image (admins only). Deleting an unknown image is not an error."""
    deleted = await blob_service.delete_file(blob_url)
    logger.info(f"Image delete by {identity.principal}: deleted={deleted}")
    return ok(request, data=DeleteResponse(deleted=deleted))

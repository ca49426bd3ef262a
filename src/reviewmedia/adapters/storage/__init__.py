"""
Storage adapters for the Review-Media service.

Azure Blob Storage integration for review images.
"""

from .azure_blob_service import (
    AzureBlobStorageService,
    extract_blob_name,
    get_azure_blob_service,
)
from .models import UploadedImage

__all__ = [
    "get_azure_blob_service",
    "extract_blob_name",
    "AzureBlobStorageService",
    "UploadedImage",
]

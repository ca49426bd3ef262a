"""
Image and identity payloads.
"""

from typing import List

from pydantic import BaseModel, Field


class StoredImageResponse(BaseModel):
    blob_url: str = Field(..., description="Blob URL without SAS token, to be persisted by the caller")


class AccessUrlResponse(BaseModel):
    url: str = Field(..., description="Blob URL with a read-only SAS token")
    validity_minutes: int = Field(..., description="Lifetime of the SAS token")


class ExistsResponse(BaseModel):
    exists: bool


class DeleteResponse(BaseModel):
    deleted: bool


class IdentityResponse(BaseModel):
    principal: str
    authorities: List[str]

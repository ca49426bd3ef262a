"""
Shared fixtures: an in-memory stand-in for the Azure Blob SDK clients.
"""

import os

# Settings are read when reviewmedia.app is imported; pin them first.
os.environ["APP_ENV"] = "testing"
os.environ["LOG_FORMAT"] = "text"
os.environ.pop("AZURE_KEY_VAULT_NAME", None)
os.environ.pop("AZURE_BLOB_CONNECTION_STRING", None)
os.environ.pop("AZURE_BLOB_ACCOUNT_KEY", None)

from typing import Dict, Optional, Tuple

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from reviewmedia.adapters.storage.azure_blob_service import AzureBlobStorageService
from reviewmedia.adapters.storage.models import UploadedImage
from reviewmedia.core.config import AzureBlobSettings
from reviewmedia.core.jwt_provider import JwtTokenProvider

ACCOUNT_NAME = "reviewsacct"
# base64 of "test-account-key"
ACCOUNT_KEY = "dGVzdC1hY2NvdW50LWtleQ=="
CONTAINER = "reviews"


class FakeBlobStore:
    """Holds blob contents and an optional error raised by every SDK call."""

    def __init__(self) -> None:
        self.blobs: Dict[str, Tuple[bytes, Optional[str]]] = {}
        self.container_created = False
        self.fail_with: Optional[Exception] = None
        self.upload_calls = 0

    def check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


class FakeBlobClient:
    def __init__(self, store: FakeBlobStore, container_name: str, blob_name: str) -> None:
        self._store = store
        self.account_name = ACCOUNT_NAME
        self.container_name = container_name
        self.blob_name = blob_name

    @property
    def url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net/{self.container_name}/{self.blob_name}"

    def exists(self) -> bool:
        self._store.check()
        return self.blob_name in self._store.blobs

    def upload_blob(self, data, length=None, overwrite=False, content_settings=None, **kwargs):
        self._store.check()
        self._store.upload_calls += 1
        if not overwrite and self.blob_name in self._store.blobs:
            raise ResourceExistsError("BlobAlreadyExists")
        content_type = content_settings.content_type if content_settings else None
        self._store.blobs[self.blob_name] = (bytes(data), content_type)
        return {"etag": "0x1"}

    def delete_blob(self, **kwargs) -> None:
        self._store.check()
        if self.blob_name not in self._store.blobs:
            raise ResourceNotFoundError("BlobNotFound")
        del self._store.blobs[self.blob_name]


class FakeContainerClient:
    def __init__(self, store: FakeBlobStore, container_name: str) -> None:
        self._store = store
        self.container_name = container_name

    def get_blob_client(self, blob: str) -> FakeBlobClient:
        return FakeBlobClient(self._store, self.container_name, blob)

    def create_container(self, **kwargs) -> None:
        self._store.check()
        if self._store.container_created:
            raise ResourceExistsError("ContainerAlreadyExists")
        self._store.container_created = True

    def get_container_properties(self, **kwargs) -> dict:
        self._store.check()
        return {"name": self.container_name}


class FakeBlobServiceClient:
    def __init__(self, store: FakeBlobStore) -> None:
        self._store = store
        self.account_name = ACCOUNT_NAME

    def get_container_client(self, container: str) -> FakeContainerClient:
        return FakeContainerClient(self._store, container)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def blob_settings() -> AzureBlobSettings:
    return AzureBlobSettings(
        account_name=ACCOUNT_NAME,
        account_key=ACCOUNT_KEY,
        container_name=CONTAINER,
        sas_token_validity_hours=24,
    )


@pytest.fixture
def blob_service(blob_settings, blob_store) -> AzureBlobStorageService:
    return AzureBlobStorageService(settings=blob_settings, client=FakeBlobServiceClient(blob_store))


@pytest.fixture
def make_image():
    def _make(
        filename: Optional[str] = "photo.png",
        content_type: Optional[str] = "image/png",
        size: int = 1024,
    ) -> UploadedImage:
        return UploadedImage(filename=filename, content_type=content_type, data=b"\x89" * size)

    return _make


@pytest.fixture
def token_provider() -> JwtTokenProvider:
    """Provider built from the same settings the app middleware uses."""
    return JwtTokenProvider()

"""
Azure Blob Storage service for review images.
Handles validated upload, on-demand read SAS URLs, deletion and existence checks.

Stored references are plain blob URLs without any SAS token; a fresh,
time-limited token is generated every time an image has to be served.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import (
    BlobClient,
    BlobSasPermissions,
    BlobServiceClient,
    ContainerClient,
    ContentSettings,
    generate_blob_sas,
)

from ...core.config import AzureBlobSettings, get_settings
from ...core.exceptions import BackingStoreError, ConfigurationError, InvalidFileError
from .models import UploadedImage

logger = logging.getLogger(__name__)


async def run_blocking(func, *args, **kwargs):
    """
    Run a blocking function in an executor to avoid blocking the event loop.

    Args:
        func: The blocking function to run
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: func(*args, **kwargs))


def extract_blob_name(blob_url: Optional[str]) -> Optional[str]:
    """
    Extract the blob name from a full blob URL.

    Any query string (such as a previously appended SAS token) is dropped
    first. Ex: https://account.blob.core.windows.net/reviews/uuid.jpg?sv=... -> uuid.jpg

    Returns None for empty input or when the URL ends with a slash.
    """
    if not blob_url:
        return None

    url_without_sas = blob_url.split("?", 1)[0]
    blob_name = url_without_sas.split("/")[-1]
    return blob_name or None


def get_file_extension(filename: Optional[str]) -> str:
    """Return the text after the last dot of ``filename``, case preserved."""
    if not filename or not filename.strip():
        raise InvalidFileError("Invalid file name")

    last_dot_index = filename.rfind(".")
    if last_dot_index == -1:
        raise InvalidFileError("File must have an extension", {"filename": filename})

    return filename[last_dot_index + 1:]


class AzureBlobStorageService:
    """Azure Blob Storage service for review image operations."""

    def __init__(
        self,
        settings: Optional[AzureBlobSettings] = None,
        client: Optional[BlobServiceClient] = None,
    ):
        self.settings = settings or get_settings().azure_blob
        self._client: Optional[BlobServiceClient] = client
        self._container_client: Optional[ContainerClient] = None

    @property
    def client(self) -> BlobServiceClient:
        """Get or create the shared BlobServiceClient."""
        if self._client is None:
            if not self.settings.connection_string:
                raise ConfigurationError("Azure Blob Storage connection string is required")

            self._client = BlobServiceClient.from_connection_string(self.settings.connection_string)
            logger.info(f"🔧 Azure Blob Storage client initialized for account: {self._client.account_name}")

        return self._client

    @property
    def container_client(self) -> ContainerClient:
        """Get or create container client."""
        if self._container_client is None:
            self._container_client = self.client.get_container_client(
                self.settings.container_name
            )
        return self._container_client

    extract_blob_name = staticmethod(extract_blob_name)

    async def ensure_container_exists(self) -> bool:
        """Ensure the blob container exists (run once at startup)."""
        try:
            await run_blocking(self.container_client.create_container)
            logger.info(f"✅ Created blob container: {self.settings.container_name}")
            return True
        except ResourceExistsError:
            logger.info(f"✅ Blob container already exists: {self.settings.container_name}")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to create blob container: {e}")
            return False

    def _blob_client(self, blob_name: str) -> BlobClient:
        return self.container_client.get_blob_client(blob_name)

    @staticmethod
    def _canonical_url(blob_client: BlobClient) -> str:
        # A SAS-based connection string puts its token on BlobClient.url
        return blob_client.url.split("?", 1)[0]

    # ========== Upload ==========

    def validate_file(self, file: UploadedImage) -> str:
        """
        Check an upload against the image policy.

        Returns:
            The file extension, case preserved

        Raises:
            InvalidFileError: On the first violated rule
        """
        if file.is_empty:
            raise InvalidFileError("File is empty")

        if file.size > self.settings.max_file_size_bytes:
            raise InvalidFileError(
                f"File must not exceed {self.settings.max_file_size_mb}MB",
                {"size": file.size, "max_size": self.settings.max_file_size_bytes},
            )

        extension = get_file_extension(file.filename)

        if extension.lower() not in self.settings.allowed_extensions:
            raise InvalidFileError(
                "File type not allowed. Accepted extensions: "
                + ", ".join(self.settings.allowed_extensions),
                {"extension": extension},
            )

        content_type = file.content_type
        if not content_type or not content_type.startswith("image/"):
            raise InvalidFileError("Only images are accepted", {"content_type": content_type})

        return extension

    async def store_file(self, file: UploadedImage) -> str:
        """
        Validate and upload an image under a fresh ``<uuid>.<extension>`` name.

        Args:
            file: The uploaded image

        Returns:
            Blob URL without SAS token, suitable for persisting

        Raises:
            InvalidFileError: If the file violates the upload policy
            BackingStoreError: If Azure rejects or fails the upload
        """
        extension = self.validate_file(file)
        blob_name = f"{uuid.uuid4()}.{extension}"
        blob_client = self._blob_client(blob_name)

        try:
            await run_blocking(
                blob_client.upload_blob,
                file.data,
                length=file.size,
                overwrite=True,
                content_settings=ContentSettings(content_type=file.content_type),
            )
        except AzureError as e:
            logger.error(f"❌ Failed to upload file to Azure Blob Storage: {e}")
            raise BackingStoreError(
                "Error while uploading the file", {"blob_name": blob_name}
            ) from e

        logger.info(f"✅ Uploaded file to Azure Blob Storage: {blob_name}, size={file.size} bytes")
        return self._canonical_url(blob_client)

    # ========== SAS URLs ==========

    def _signing_credentials(self) -> Tuple[str, str]:
        """
        Resolve account name and account key.

        Format: DefaultEndpointsProtocol=https;AccountName=xxx;AccountKey=xxx;EndpointSuffix=core.windows.net
        A SharedAccessSignature in the connection string is never reused for grants.
        """
        account_name = self.settings.account_name
        account_key = self.settings.account_key

        for part in (self.settings.connection_string or "").split(";"):
            if part.startswith("AccountKey=") and not account_key:
                account_key = part.split("=", 1)[1]
            elif part.startswith("AccountName=") and not account_name:
                account_name = part.split("=", 1)[1]

        return account_name, account_key

    def _generate_read_sas(self, blob_client: BlobClient, expiry: datetime) -> str:
        account_name, account_key = self._signing_credentials()

        if not account_key:
            raise ConfigurationError(
                "Azure Blob Storage account key is required for generating SAS URLs. "
                "Set AZURE_BLOB_ACCOUNT_KEY or use a connection string with AccountKey."
            )

        return generate_blob_sas(
            account_name=account_name or blob_client.account_name,
            container_name=blob_client.container_name,
            blob_name=blob_client.blob_name,
            account_key=account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expiry,
        )

    async def generate_sas_url(
        self, blob_url: str, validity: Optional[timedelta] = None
    ) -> Optional[str]:
        """
        Generate a read-only SAS URL for a private blob.

        Must be called every time the image is served; the result is never stored.

        Args:
            blob_url: Stored blob URL (a SAS query already on it is ignored)
            validity: Token lifetime, defaults to the configured validity hours

        Returns:
            Blob URL with SAS token, or None if the blob is unknown or anything fails
        """
        try:
            blob_name = extract_blob_name(blob_url)
            if not blob_name:
                logger.warning("⚠️ Invalid blob name, cannot generate SAS URL")
                return None

            blob_client = self._blob_client(blob_name)

            if not await run_blocking(blob_client.exists):
                logger.warning(f"⚠️ Blob does not exist: {blob_name}")
                return None

            if validity is None:
                validity = timedelta(hours=self.settings.sas_token_validity_hours)
            expiry = datetime.now(timezone.utc) + validity

            sas_token = self._generate_read_sas(blob_client, expiry)

            logger.debug(f"🔐 SAS URL generated for: {blob_name}")
            return f"{self._canonical_url(blob_client)}?{sas_token}"

        except Exception:
            logger.error("❌ Error while generating SAS token", exc_info=True)
            return None

    # ========== Delete / exists ==========

    async def delete_file(self, blob_url: str) -> bool:
        """
        Delete a blob, best effort.

        Returns:
            True if a blob was deleted, False when it was absent or deletion failed
        """
        try:
            blob_name = extract_blob_name(blob_url)
            if not blob_name:
                logger.warning("⚠️ Invalid blob name, cannot delete")
                return False

            blob_client = self._blob_client(blob_name)

            if not await run_blocking(blob_client.exists):
                logger.warning(f"⚠️ Blob does not exist: {blob_name}")
                return False

            await run_blocking(blob_client.delete_blob)
            logger.info(f"✅ Deleted file from Azure Blob Storage: {blob_name}")
            return True

        except Exception as e:
            logger.error(f"❌ Error while deleting blob: {e}", exc_info=True)
            return False

    async def file_exists(self, blob_url: str) -> bool:
        """Check whether the blob behind ``blob_url`` exists; errors count as absent."""
        try:
            blob_name = extract_blob_name(blob_url)
            if not blob_name:
                return False

            return await run_blocking(self._blob_client(blob_name).exists)
        except Exception:
            logger.error("❌ Error while checking blob existence", exc_info=True)
            return False


@lru_cache()
def get_azure_blob_service() -> AzureBlobStorageService:
    """Get the process-wide Azure Blob Storage service instance."""
    return AzureBlobStorageService()

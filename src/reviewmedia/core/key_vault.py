"""
Secret lookup backed by Azure Key Vault.

Only used to pre-fill storage and signing secrets that the environment
leaves unset. Secret names are dash-separated in the vault and map to
upper-case underscore environment variables (AZURE-BLOB-ACCOUNT-KEY ->
AZURE_BLOB_ACCOUNT_KEY).
"""
import logging
import os
from typing import Optional

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.keyvault.secrets import SecretClient

logger = logging.getLogger(__name__)


def _env_name(secret_name: str) -> str:
    return secret_name.replace("-", "_").upper()


def _build_credential() -> Optional[TokenCredential]:
    """App Service managed identity, else the developer's local Azure login."""
    for credential_type in (ManagedIdentityCredential, DefaultAzureCredential):
        try:
            credential = credential_type()
        except Exception as e:
            logger.debug(f"{credential_type.__name__} unavailable: {e}")
            continue
        logger.info(f"Key Vault credential: {credential_type.__name__}")
        return credential

    logger.warning("⚠️  No Azure credential available for Key Vault")
    return None


class AzureKeyVaultService:
    """Reads review-media secrets from one vault, with environment fallback."""

    def __init__(self, vault_name: str):
        self.vault_name = vault_name
        self.vault_url = f"https://{vault_name}.vault.azure.net/"
        self._client: Optional[SecretClient] = None
        self._connected = False

    @property
    def client(self) -> Optional[SecretClient]:
        if self._client is None:
            credential = _build_credential()
            if credential is None:
                return None
            try:
                self._client = SecretClient(vault_url=self.vault_url, credential=credential)
            except Exception as e:
                logger.error(f"❌ Could not open Key Vault '{self.vault_name}': {e}")
                return None
            # Permissions are only checked on the first read
            self._connected = True
            logger.info(f"✅ Key Vault client ready: {self.vault_name}")
        return self._client

    @property
    def is_available(self) -> bool:
        return self.client is not None and self._connected

    def get_secret(self, secret_name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Return the vault value of ``secret_name``.

        Falls back to the matching environment variable, then ``default``,
        when the vault is unreachable or the read fails.
        """
        fallback = os.getenv(_env_name(secret_name), default)
        if not self.is_available:
            return fallback

        try:
            value = self.client.get_secret(secret_name).value
        except AzureError as e:
            logger.warning(f"⚠️  Key Vault read failed for {secret_name}: {e}")
            return fallback

        logger.info(f"✅ Secret {secret_name} read from Key Vault")
        return value


_key_vault_service: Optional[AzureKeyVaultService] = None


def get_key_vault_service() -> Optional[AzureKeyVaultService]:
    """Process-wide vault reader, or None when AZURE_KEY_VAULT_NAME is unset."""
    global _key_vault_service

    if _key_vault_service is not None:
        return _key_vault_service

    vault_name = os.getenv("AZURE_KEY_VAULT_NAME", "")
    if not vault_name:
        logger.debug("AZURE_KEY_VAULT_NAME unset; secrets come from the environment only")
        return None

    _key_vault_service = AzureKeyVaultService(vault_name)
    if not _key_vault_service.is_available:
        logger.warning(f"⚠️  Key Vault '{vault_name}' unavailable; secrets come from the environment only")
    return _key_vault_service

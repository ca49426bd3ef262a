"""FastAPI dependency providers."""

from typing import Annotated, Callable, Optional

from fastapi import Depends, Request

from ..adapters.storage.azure_blob_service import AzureBlobStorageService, get_azure_blob_service
from ..core.security_context import RequestIdentity
from .errors import ForbiddenError, UnauthorizedError


def get_blob_storage_service() -> AzureBlobStorageService:
    """Get the shared blob storage service."""
    return get_azure_blob_service()


def get_current_identity(request: Request) -> Optional[RequestIdentity]:
    """
    Identity installed by JwtAuthenticationMiddleware, or None for anonymous callers.
    """
    return getattr(request.state, "identity", None)


def require_identity(
    identity: Annotated[Optional[RequestIdentity], Depends(get_current_identity)],
) -> RequestIdentity:
    """Reject anonymous callers with 401."""
    if identity is None:
        raise UnauthorizedError("Authentication required")
    return identity


def require_role(role: str) -> Callable[..., RequestIdentity]:
    """Build a dependency that demands the ``ROLE_<role>`` authority."""

    def _check(identity: Annotated[RequestIdentity, Depends(require_identity)]) -> RequestIdentity:
        if not identity.has_role(role):
            raise ForbiddenError(f"Role {role} required", {"authorities": list(identity.authorities)})
        return identity

    return _check


# Dependency annotations for FastAPI
BlobStorageServiceDep = Annotated[AzureBlobStorageService, Depends(get_blob_storage_service)]
CurrentIdentityDep = Annotated[RequestIdentity, Depends(require_identity)]
AdminIdentityDep = Annotated[RequestIdentity, Depends(require_role("ADMIN"))]

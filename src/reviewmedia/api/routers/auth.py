"""
Identity introspection endpoint.
"""

from fastapi import APIRouter, Request

from ..deps import CurrentIdentityDep
from ..schemas.common import ApiResponse
from ..schemas.images import IdentityResponse
from ..utils.responses import ok

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=ApiResponse[IdentityResponse])
async def who_am_i(request: Request, identity: CurrentIdentityDep):
    """Return the principal and authorities resolved from the bearer token."""
    return ok(
        request,
        data=IdentityResponse(principal=identity.principal, authorities=list(identity.authorities)),
    )

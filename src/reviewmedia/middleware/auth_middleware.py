"""
JWT authentication middleware - establishes the caller identity before request processing.

The middleware never rejects a request. A missing, malformed or invalid
bearer token simply leaves the request anonymous; route dependencies decide
whether anonymous access is allowed.
"""
import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.jwt_provider import JwtTokenProvider
from ..core.security_context import (
    RequestIdentity,
    reset_current_identity,
    set_current_identity,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def get_jwt_from_request(request: Request) -> Optional[str]:
    """Extract the JWT from the Authorization header."""
    bearer_token = request.headers.get("Authorization")
    if bearer_token and bearer_token.strip() and bearer_token.startswith(BEARER_PREFIX):
        return bearer_token[len(BEARER_PREFIX):]
    return None


class JwtAuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Middleware that turns a valid bearer JWT into a RequestIdentity.

    The identity is exposed on ``request.state.identity`` and through
    ``security_context.get_current_identity()`` for the rest of the request.
    """

    def __init__(self, app, token_provider: Optional[JwtTokenProvider] = None):
        super().__init__(app)
        self._token_provider = token_provider

    @property
    def token_provider(self) -> JwtTokenProvider:
        if self._token_provider is None:
            self._token_provider = JwtTokenProvider()
        return self._token_provider

    def authenticate(self, request: Request) -> Optional[RequestIdentity]:
        """Resolve the caller identity, or None when the request stays anonymous."""
        try:
            jwt = get_jwt_from_request(request)

            if jwt and jwt.strip() and self.token_provider.validate_token(jwt):
                email = self.token_provider.get_email_from_token(jwt)
                role = self.token_provider.get_role_from_token(jwt)
                return RequestIdentity.from_role(email, role)
        except Exception as ex:
            logger.error(f"Could not set user authentication in security context: {ex}", exc_info=True)

        return None

    async def dispatch(self, request: Request, call_next):
        identity = self.authenticate(request)
        request.state.identity = identity
        if identity is not None:
            logger.debug(f"✅ Authenticated {identity.principal} {list(identity.authorities)} for {request.url.path}")

        token = set_current_identity(identity)
        try:
            return await call_next(request)
        finally:
            reset_current_identity(token)

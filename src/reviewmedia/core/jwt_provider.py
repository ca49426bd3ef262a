"""
JWT issuing and verification.

Tokens carry the user's email as ``sub`` and a single ``role`` claim.
Signature and expiry checks are delegated to python-jose.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from .config import SecuritySettings, get_settings
from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class JwtTokenProvider:
    """Creates and validates access tokens signed with the configured secret."""

    def __init__(self, settings: Optional[SecuritySettings] = None):
        self.settings = settings or get_settings().security

    def create_token(
        self, email: str, role: str, expires_delta: Optional[timedelta] = None
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (
            expires_delta or timedelta(minutes=self.settings.access_token_expire_minutes)
        )
        claims: Dict[str, Any] = {"sub": email, "role": role, "iat": now, "exp": expire}
        return jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.algorithm)

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.algorithm])
        except JWTError as exc:
            raise AuthenticationError("Invalid token") from exc

    def validate_token(self, token: str) -> bool:
        """Return True when the token's signature and expiry check out."""
        try:
            self._decode(token)
            return True
        except AuthenticationError as exc:
            logger.debug(f"JWT rejected: {exc.__cause__}")
            return False

    def get_email_from_token(self, token: str) -> str:
        email = self._decode(token).get("sub")
        if not email:
            raise AuthenticationError("Token has no subject")
        return email

    def get_role_from_token(self, token: str) -> str:
        role = self._decode(token).get("role")
        if not role:
            raise AuthenticationError("Token has no role claim")
        return role

"""
Request-scoped caller identity.

The authentication middleware installs a ``RequestIdentity`` for the
duration of one request. It is stored on ``request.state`` and in a
``ContextVar``, so each concurrent request sees only its own identity.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Optional, Tuple

ROLE_PREFIX = "ROLE_"


@dataclass(frozen=True)
class RequestIdentity:
    """Authenticated caller: a principal (email) and one role-derived authority."""

    principal: str
    role: str
    authorities: Tuple[str, ...] = field(default=())

    @classmethod
    def from_role(cls, principal: str, role: str) -> "RequestIdentity":
        return cls(principal=principal, role=role, authorities=(f"{ROLE_PREFIX}{role}",))

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

    def has_role(self, role: str) -> bool:
        return self.has_authority(f"{ROLE_PREFIX}{role}")


_current_identity: ContextVar[Optional[RequestIdentity]] = ContextVar(
    "reviewmedia_current_identity", default=None
)


def get_current_identity() -> Optional[RequestIdentity]:
    """Identity of the request being processed, or None when anonymous."""
    return _current_identity.get()


def set_current_identity(identity: Optional[RequestIdentity]) -> Token:
    return _current_identity.set(identity)


def reset_current_identity(token: Token) -> None:
    _current_identity.reset(token)

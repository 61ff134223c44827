"""
Caller identity shared between the gateway and the backend services.

The gateway derives an ``Identity`` from a verified bearer credential and
forwards it as three plain headers. Backends sit on the private network
behind the gateway and read those headers back without re-verifying the
credential; absent headers mean an anonymous caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

from .logging import get_logger

USER_ID_HEADER = "X-User-Id"
USER_EMAIL_HEADER = "X-User-Email"
USER_ROLE_HEADER = "X-User-Role"

IDENTITY_HEADERS = (USER_ID_HEADER, USER_EMAIL_HEADER, USER_ROLE_HEADER)

logger = get_logger("shared.identity")


class Role(str, Enum):
    """User roles."""
    ORGANIZER = "ORGANIZER"
    PARTICIPANT = "PARTICIPANT"


@dataclass(frozen=True)
class Identity:
    """Verified caller attributes, valid for one request."""

    id: int
    email: str
    role: Role

    def to_headers(self) -> Dict[str, str]:
        return {
            USER_ID_HEADER: str(self.id),
            USER_EMAIL_HEADER: self.email,
            USER_ROLE_HEADER: self.role.value,
        }

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "email": self.email, "role": self.role.value}


def identity_from_headers(headers: Mapping[str, str]) -> Optional[Identity]:
    """Rebuild the forwarded identity, or None for anonymous callers.

    ``headers`` must be case-insensitive (Starlette and httpx headers are).
    """
    user_id = headers.get(USER_ID_HEADER)
    email = headers.get(USER_EMAIL_HEADER)
    role = headers.get(USER_ROLE_HEADER)

    if not (user_id and email and role):
        return None

    try:
        return Identity(id=int(user_id), email=email, role=Role(role))
    except ValueError:
        logger.warning("Ignoring malformed identity headers", user_id=user_id, role=role)
        return None

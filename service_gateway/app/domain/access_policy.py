"""
Coarse role gate applied at the edge.

Ownership of a particular event is deliberately not checked here: it needs
resource state only the event service holds, so the event service applies
that finer check on its side of the boundary.
"""

from typing import AbstractSet, Optional

from shared.errors import AuthenticationRequiredError, InsufficientPermissionsError
from shared.identity import Identity, Role
from shared.logging import get_logger

logger = get_logger("gateway.access_policy")


def authorize(identity: Optional[Identity], allowed_roles: Optional[AbstractSet[Role]]) -> None:
    """Allow the request or raise.

    ``allowed_roles`` of None means the route carries no role restriction.
    """
    if allowed_roles is None:
        return

    if identity is None:
        raise AuthenticationRequiredError()

    if identity.role not in allowed_roles:
        logger.info(
            "Role not permitted for route",
            user_id=identity.id,
            role=identity.role.value,
            allowed=sorted(role.value for role in allowed_roles),
        )
        raise InsufficientPermissionsError()

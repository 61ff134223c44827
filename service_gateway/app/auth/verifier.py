"""
Bearer credential verification for the API Gateway.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from shared.errors import CredentialExpiredError, CredentialInvalidError, MissingCredentialError
from shared.identity import Identity, Role
from shared.logging import get_logger

BEARER_PREFIX = "Bearer "


class IdentityVerifier:
    """Validates HMAC-signed JWTs against the process-wide secret.

    Pure computation: no I/O and no state besides the secret and the single
    accepted algorithm, so one instance is shared by every request.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.logger = get_logger("gateway.auth.verifier")

    def verify_authorization_header(self, authorization: Optional[str]) -> Identity:
        """Extract the bearer token from an Authorization header and verify it."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise MissingCredentialError()

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise MissingCredentialError()

        return self.verify(token)

    def verify(self, credential: str) -> Identity:
        """Verify signature and expiry, then build the caller identity."""
        try:
            claims = jwt.decode(
                credential,
                self._secret,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except ExpiredSignatureError as exc:
            raise CredentialExpiredError() from exc
        except JWTError as exc:
            self.logger.info("Rejected bearer credential", error=str(exc))
            raise CredentialInvalidError() from exc

        return self._identity_from_claims(claims)

    def _identity_from_claims(self, claims: Dict[str, Any]) -> Identity:
        subject = claims.get("sub")
        email = claims.get("email")
        role = claims.get("role")

        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            raise CredentialInvalidError(details={"reason": "subject is not a user id"})

        if not isinstance(email, str) or not email:
            raise CredentialInvalidError(details={"reason": "missing email claim"})

        try:
            parsed_role = Role(role)
        except ValueError:
            raise CredentialInvalidError(details={"reason": "unknown role"})

        return Identity(id=user_id, email=email, role=parsed_role)

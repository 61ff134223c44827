"""
Token issuing for Auth service.
"""

import time
from typing import Callable

from jose import jwt

from ..users.models import User


class TokenIssuer:
    """Signs bearer credentials the gateway verifies with the same secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in_seconds: int = 86400,
                 clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_in_seconds = expires_in_seconds
        self._clock = clock

    def issue(self, user: User) -> str:
        issued_at = int(self._clock())
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "iat": issued_at,
            "exp": issued_at + self.expires_in_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

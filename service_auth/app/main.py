"""
Auth service for the MOV Event Platform.
"""

from typing import Dict, Optional

from fastapi import Depends, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import AuthenticationError, AuthenticationRequiredError, AuthorizationError, NotFoundError
from shared.identity import Identity, identity_from_headers
from shared.responses import success_response

from .tokens import TokenIssuer
from .users import InMemoryUserStore, LoginRequest, RegisterRequest, User, verify_password


def current_identity(request: Request) -> Optional[Identity]:
    """Caller identity forwarded by the gateway, or None."""
    return identity_from_headers(request.headers)


class AuthService(BaseService):
    """Auth service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 users: Optional[InMemoryUserStore] = None):
        super().__init__("auth", 3001, config or get_config("auth", 3001))
        self.users = users if users is not None else InMemoryUserStore()
        self.issuer = TokenIssuer(
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            expires_in_seconds=self.config.jwt_expires_in_seconds,
        )

        self._setup_auth_routes()
        self.app.state.auth_service = self

    async def authenticate(self, email: str, password: str) -> User:
        """Return the active user for the credentials or raise."""
        user = await self.users.get_by_email(email)
        if user is None:
            self.metrics.increment_counter("logins_total", status="unknown_user")
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            self.metrics.increment_counter("logins_total", status="inactive")
            raise AuthorizationError("Account is deactivated")

        if not verify_password(password, user.password_hash):
            self.metrics.increment_counter("logins_total", status="bad_password")
            raise AuthenticationError("Invalid credentials")

        self.metrics.increment_counter("logins_total", status="success")
        return user

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.post("/auth/register", status_code=201)
        async def register(payload: RegisterRequest):
            user = await self.users.create(payload)
            self.metrics.record_business_event("user_registered")
            return success_response("User registered successfully", {"user": user.to_wire()}, status_code=201)

        @self.app.post("/auth/login")
        async def login(payload: LoginRequest):
            user = await self.authenticate(payload.email, payload.password)
            self.logger.info("User logged in", user_id=user.id)
            return success_response(
                "Login successful",
                {"token": self.issuer.issue(user), "user": user.to_wire()},
            )

        @self.app.get("/auth/me")
        async def profile(identity: Optional[Identity] = Depends(current_identity)):
            if identity is None:
                raise AuthenticationRequiredError()
            user = await self.users.get(identity.id)
            if user is None:
                raise NotFoundError("User not found", details={"user_id": identity.id})
            return success_response("Profile retrieved successfully", {"user": user.to_wire()})

        @self.app.get("/auth/verify")
        async def verify(identity: Optional[Identity] = Depends(current_identity)):
            if identity is None:
                raise AuthenticationRequiredError()
            return success_response("Token is valid", {"user": identity.to_dict()})

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"user_store": "ok"}


def create_app(config: Optional[ServiceConfig] = None,
               users: Optional[InMemoryUserStore] = None):
    return AuthService(config, users=users).app


if __name__ == "__main__":
    service = AuthService()
    service.run()

"""
User data models for Auth service.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from shared.identity import Role


class User(BaseModel):
    """Stored user account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    email: str
    password_hash: str
    role: Role
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_wire(self) -> Dict[str, Any]:
        """Public profile; never includes the password hash."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include={"id", "email", "role", "first_name", "last_name"},
        )


class RegisterRequest(BaseModel):
    """Request model for registration."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator("role", mode="before")
    @classmethod
    def known_role(cls, value: Any) -> Role:
        try:
            return Role(value)
        except ValueError:
            raise ValueError("Role must be either ORGANIZER or PARTICIPANT")


class LoginRequest(BaseModel):
    """Request model for login."""
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1)

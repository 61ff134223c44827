"""
In-memory user store for Auth service.
"""

import asyncio
from typing import Dict, Optional

from shared.errors import DuplicateEntryError
from shared.logging import get_logger

from .models import RegisterRequest, User
from .passwords import hash_password


class InMemoryUserStore:
    """Users keyed by id, unique by case-insensitive email."""

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._by_email: Dict[str, int] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        self.logger = get_logger("auth.users")

    async def create(self, request: RegisterRequest, is_active: bool = True) -> User:
        key = request.email.lower()
        password_hash = hash_password(request.password)
        async with self._lock:
            if key in self._by_email:
                raise DuplicateEntryError("User with this email already exists")

            user = User(
                id=self._next_id,
                email=request.email,
                password_hash=password_hash,
                role=request.role,
                first_name=request.first_name,
                last_name=request.last_name,
                is_active=is_active,
            )
            self._users[user.id] = user
            self._by_email[key] = user.id
            self._next_id += 1

        self.logger.info("User registered", user_id=user.id, role=user.role.value)
        return user

    async def get(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        user_id = self._by_email.get(email.lower())
        return self._users.get(user_id) if user_id is not None else None

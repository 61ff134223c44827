"""
User accounts for the Auth service.
"""

from .models import LoginRequest, RegisterRequest, User
from .passwords import hash_password, verify_password
from .store import InMemoryUserStore

__all__ = [
    "InMemoryUserStore",
    "LoginRequest",
    "RegisterRequest",
    "User",
    "hash_password",
    "verify_password",
]

"""
Authentication helpers for the API Gateway.
"""

from .verifier import IdentityVerifier

__all__ = [
    "IdentityVerifier",
]

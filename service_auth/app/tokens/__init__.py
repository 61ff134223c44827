"""
Credential issuing for the Auth service.
"""

from .issuer import TokenIssuer

__all__ = ["TokenIssuer"]

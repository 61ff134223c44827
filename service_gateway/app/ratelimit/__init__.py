"""
Rate limiting for the API Gateway.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitDecision, client_id_for

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "client_id_for",
]

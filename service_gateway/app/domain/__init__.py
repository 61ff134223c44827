"""
Domain utilities for the Gateway Service.

Request processing stages and the edge access policy; nothing here
performs network I/O except through the injected rate limiter.
"""

from .access_policy import authorize
from .pipeline import GatewayContext, RequestPipeline, build_pipeline

__all__ = [
    "GatewayContext",
    "RequestPipeline",
    "authorize",
    "build_pipeline",
]

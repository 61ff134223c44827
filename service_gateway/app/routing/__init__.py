"""
Route table for the API Gateway.
"""

from .table import (
    API_PREFIX,
    AuthRequirement,
    PathMatch,
    RewriteRule,
    Route,
    RouteConfigurationError,
    RouteTable,
    build_default_routes,
    build_route_table,
)

__all__ = [
    "API_PREFIX",
    "AuthRequirement",
    "PathMatch",
    "RewriteRule",
    "Route",
    "RouteConfigurationError",
    "RouteTable",
    "build_default_routes",
    "build_route_table",
]

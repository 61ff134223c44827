"""
Request processing pipeline for the API Gateway.

An inbound request becomes a ``GatewayContext`` that each stage may enrich
(matched route, verified identity). Stages run strictly in order; any stage
stops processing by raising an ``AccessLayerException``, which the service
exception handlers turn into the error envelope. The final stage hands the
context to the forwarding engine.
"""

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Sequence

from fastapi import Request
from starlette.datastructures import Headers

from shared.errors import AuthenticationRequiredError, RateLimitError
from shared.identity import Identity
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector

from ..auth.verifier import IdentityVerifier
from ..ratelimit.fixed_window import FixedWindowRateLimiter, client_id_for
from ..routing.table import Route, RouteTable
from .access_policy import authorize

logger = get_logger("gateway.pipeline")


@dataclass(frozen=True)
class GatewayContext:
    """Everything the gateway knows about one inbound request."""

    method: str
    path: str
    query: str
    headers: Headers
    body: bytes = b""
    client_id: str = "unknown"
    request_id: Optional[str] = None
    route: Optional[Route] = None
    identity: Optional[Identity] = None

    @classmethod
    async def from_request(cls, request: Request, request_id: Optional[str] = None) -> "GatewayContext":
        return cls(
            method=request.method.upper(),
            path=request.url.path,
            query=request.url.query,
            headers=request.headers,
            body=await request.body(),
            client_id=client_id_for(request),
            request_id=request_id,
        )

    def require_route(self) -> Route:
        if self.route is None:
            raise RuntimeError("Route has not been matched yet")
        return self.route


Stage = Callable[[GatewayContext], Awaitable[GatewayContext]]


class RequestPipeline:
    """Ordered list of async stages."""

    def __init__(self, stages: Sequence[Stage]):
        self.stages = tuple(stages)

    async def run(self, context: GatewayContext) -> GatewayContext:
        for stage in self.stages:
            context = await stage(context)
        return context


def rate_limit_stage(limiter: FixedWindowRateLimiter, metrics: Optional[MetricsCollector] = None) -> Stage:
    async def _rate_limit(context: GatewayContext) -> GatewayContext:
        try:
            await limiter.enforce(context.client_id)
        except RateLimitError:
            if metrics is not None:
                metrics.increment_counter("rate_limit_hits_total", route="api")
            raise
        return context

    return _rate_limit


def match_route_stage(table: RouteTable) -> Stage:
    async def _match_route(context: GatewayContext) -> GatewayContext:
        route = table.match(context.method, context.path)
        logger.debug("Route matched", route=route.name, method=context.method, path=context.path)
        return replace(context, route=route)

    return _match_route


def authenticate_stage(verifier: IdentityVerifier) -> Stage:
    """Verify the bearer credential when the matched route requires one."""

    async def _authenticate(context: GatewayContext) -> GatewayContext:
        route = context.require_route()
        if not route.requires_auth:
            return context

        identity = verifier.verify_authorization_header(context.headers.get("authorization"))
        set_user_context(str(identity.id))
        return replace(context, identity=identity)

    return _authenticate


def authorize_stage() -> Stage:
    async def _authorize(context: GatewayContext) -> GatewayContext:
        route = context.require_route()
        if route.requires_auth and context.identity is None:
            raise AuthenticationRequiredError()
        authorize(context.identity, route.roles)
        return context

    return _authorize


def build_pipeline(table: RouteTable, verifier: IdentityVerifier,
                   limiter: Optional[FixedWindowRateLimiter] = None,
                   metrics: Optional[MetricsCollector] = None) -> RequestPipeline:
    stages = []
    if limiter is not None:
        stages.append(rate_limit_stage(limiter, metrics))
    stages.extend([
        match_route_stage(table),
        authenticate_stage(verifier),
        authorize_stage(),
    ])
    return RequestPipeline(stages)

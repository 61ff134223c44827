"""
API Gateway service for the MOV Event Platform.
"""

from typing import Dict, Optional

import httpx
from fastapi import Request

from shared.base_service import METRICS_ENDPOINT_KEY, UNMATCHED_ENDPOINT, BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import NotFoundError
from shared.logging import get_request_id
from shared.responses import success_response

from .adapters.forwarder import ForwardingEngine
from .auth.verifier import IdentityVerifier
from .domain.pipeline import GatewayContext, build_pipeline
from .ratelimit.fixed_window import FixedWindowRateLimiter
from .routing.table import API_PREFIX, RouteTable, build_route_table

FORWARDED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


class GatewayService(BaseService):
    """API Gateway service implementation."""

    # Identity headers from clients are never trusted here.
    trusts_identity_headers = False

    def __init__(self, config: Optional[ServiceConfig] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 rate_limiter: Optional[FixedWindowRateLimiter] = None):
        super().__init__("gateway", 3000, config or get_config("gateway", 3000))

        self.route_table: RouteTable = build_route_table(self.config)
        self.verifier = IdentityVerifier(self.config.jwt_secret, self.config.jwt_algorithm)

        if rate_limiter is None and self.config.rate_limit_enabled:
            rate_limiter = FixedWindowRateLimiter(
                self.config.redis_url,
                window_seconds=self.config.rate_limit_window_seconds,
                max_requests=self.config.rate_limit_max_requests,
            )
        self.rate_limiter = rate_limiter

        self.pipeline = build_pipeline(self.route_table, self.verifier, self.rate_limiter, self.metrics)
        self.forwarder = ForwardingEngine(self.config, client=client, metrics=self.metrics)

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.forwarder.close()
            if self.rate_limiter is not None:
                await self.rate_limiter.close()

        self._setup_gateway_routes()

        self.app.state.gateway_service = self
        self.logger.info(
            "Gateway configured",
            routes=[route.name for route in self.route_table.routes],
            rate_limit_enabled=self.rate_limiter is not None,
        )

    def _setup_gateway_routes(self):
        """Set up the service directory and the forwarding catch-all."""

        @self.app.get(API_PREFIX)
        async def service_directory():
            services = {"auth": f"{API_PREFIX}/auth", "events": f"{API_PREFIX}/events"}
            for domain in self.config.optional_backends():
                services[domain] = f"{API_PREFIX}/{domain}"
            return success_response(
                "MOV Event Management API Gateway",
                {"version": self.app.version, "services": services},
            )

        @self.app.api_route("/{full_path:path}", methods=FORWARDED_METHODS, include_in_schema=False)
        async def forward(request: Request):
            request.scope[METRICS_ENDPOINT_KEY] = self._metrics_endpoint(request.method, request.url.path)
            context = await GatewayContext.from_request(request, request_id=get_request_id())
            context = await self.pipeline.run(context)
            return await self.forwarder.forward(request, context)

    def _metrics_endpoint(self, method: str, path: str) -> str:
        """Label forwarded traffic by route name so client paths stay out of metrics."""
        try:
            return self.route_table.match(method, path).name
        except NotFoundError:
            return UNMATCHED_ENDPOINT

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check gateway dependencies."""
        if self.rate_limiter is None:
            return {}
        return {"rate_limit_store": "ok" if await self.rate_limiter.ping() else "error"}


def create_app(config: Optional[ServiceConfig] = None,
               client: Optional[httpx.AsyncClient] = None,
               rate_limiter: Optional[FixedWindowRateLimiter] = None):
    return GatewayService(config, client=client, rate_limiter=rate_limiter).app


if __name__ == "__main__":
    service = GatewayService()
    service.run()

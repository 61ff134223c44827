"""
Forwarding engine for Gateway service.

Relays a request that passed the pipeline to the backend named by its
route and streams the backend's answer back unchanged.
"""

import asyncio
import time
from typing import Iterable, List, Optional, Tuple

import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from shared.config import BaseConfig
from shared.errors import ServiceUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..domain.pipeline import GatewayContext
from .context import ContextForwarder

HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
})

# Recomputed by httpx for the outbound request.
_REQUEST_ONLY_SKIP = frozenset({"host", "content-length"})

REQUEST_ID_HEADER = "X-Request-ID"

# Non-standard status, logged only: nobody is left to read the response.
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The inbound client went away before the backend answered."""


def _filter_headers(items: Iterable[Tuple[str, str]], skip: frozenset) -> List[Tuple[str, str]]:
    return [(name, value) for name, value in items if name.lower() not in skip]


class ForwardingEngine:
    """Sends one outbound call per inbound request over a shared client."""

    def __init__(self, config: BaseConfig, client: Optional[httpx.AsyncClient] = None,
                 context_forwarder: Optional[ContextForwarder] = None,
                 metrics: Optional[MetricsCollector] = None,
                 disconnect_poll_interval: float = 0.1):
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=config.forward_timeout_seconds)
        self.context_forwarder = context_forwarder or ContextForwarder()
        self.metrics = metrics
        self.disconnect_poll_interval = disconnect_poll_interval
        self.logger = get_logger("gateway.forwarder")

    def build_request(self, context: GatewayContext) -> httpx.Request:
        """Translate the inbound context into the backend request."""
        route = context.require_route()
        url = route.target.rstrip("/") + route.backend_path(context.path)
        if context.query:
            url = f"{url}?{context.query}"

        headers = httpx.Headers(
            _filter_headers(context.headers.items(), HOP_BY_HOP_HEADERS | _REQUEST_ONLY_SKIP)
        )
        if context.request_id:
            headers[REQUEST_ID_HEADER] = context.request_id

        outbound = self.client.build_request(
            context.method,
            url,
            headers=headers,
            content=context.body or None,
        )
        return self.context_forwarder.attach(outbound, context.identity)

    async def forward(self, request: Request, context: GatewayContext) -> Response:
        """Forward the request and stream the backend response back."""
        route = context.require_route()
        outbound = self.build_request(context)
        start_time = time.time()

        try:
            upstream = await self._send_unless_disconnected(request, outbound)
        except httpx.TransportError as exc:
            cause = str(exc) or exc.__class__.__name__
            self.logger.error(
                "Backend unavailable",
                route=route.name,
                target=route.target,
                method=outbound.method,
                url=str(outbound.url),
                error=cause,
            )
            self._record(route.name, "unavailable", start_time)
            raise ServiceUnavailableError(cause, details={"route": route.name})
        except ClientDisconnected:
            self.logger.info("Client disconnected before backend answered", route=route.name)
            self._record(route.name, "client_disconnected", start_time)
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        self._record(route.name, "forwarded", start_time)
        self.logger.debug(
            "Forwarded request",
            route=route.name,
            url=str(outbound.url),
            status_code=upstream.status_code,
        )

        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in _filter_headers(upstream.headers.multi_items(), HOP_BY_HOP_HEADERS)
        ]
        return response

    async def _send_unless_disconnected(self, request: Request, outbound: httpx.Request) -> httpx.Response:
        send_task = asyncio.ensure_future(self.client.send(outbound, stream=True))
        try:
            while True:
                done, _ = await asyncio.wait({send_task}, timeout=self.disconnect_poll_interval)
                if done:
                    return send_task.result()
                if await request.is_disconnected():
                    raise ClientDisconnected()
        finally:
            if not send_task.done():
                send_task.cancel()

    def _record(self, route_name: str, outcome: str, start_time: float) -> None:
        if self.metrics is None:
            return
        self.metrics.increment_counter("forwarded_requests_total", route=route_name, outcome=outcome)
        self.metrics.observe_histogram("forward_duration_seconds", time.time() - start_time, route=route_name)

    async def close(self) -> None:
        await self.client.aclose()

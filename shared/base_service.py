"""
Base service class for MOV Event Platform services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException
from datetime import datetime, timezone
from typing import Dict, List, Optional
import time

from shared.config import ServiceConfig, get_config
from shared.errors import AccessLayerException
from shared.identity import USER_ID_HEADER
from shared.logging import configure_logging, get_logger, clear_context, set_request_id, set_user_context
from shared.metrics import get_metrics_collector
from shared.responses import ErrorEnvelope, FieldError, error_response, success_response

REQUEST_ID_HEADER = "X-Request-ID"

# Scope key a handler may set to override the metrics endpoint label.
METRICS_ENDPOINT_KEY = "metrics_endpoint"
UNMATCHED_ENDPOINT = "unmatched"

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def validation_errors_to_fields(errors) -> List[FieldError]:
    """Flatten pydantic/FastAPI error dicts into ``{field, message}`` pairs."""
    fields = []
    for error in errors:
        location = list(error.get("loc", ()))
        if location and location[0] in _LOCATION_PREFIXES:
            location = location[1:]
        field = ".".join(str(part) for part in location) or "body"
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.append(FieldError(field=field, message=message))
    return fields


def endpoint_label(request: Request) -> str:
    """Metrics label for a request: the route template, never the raw path."""
    label = request.scope.get(METRICS_ENDPOINT_KEY)
    if label:
        return label
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


class BaseService:
    """Base service class with common functionality."""

    # Backends sit behind the gateway and may log the forwarded caller id.
    trusts_identity_headers = True

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"MOV Event Platform - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            clear_context()
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            if self.trusts_identity_headers:
                set_user_context(request.headers.get(USER_ID_HEADER))
            start_time = time.time()

            response = await call_next(request)

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=endpoint_label(request),
                status_code=response.status_code,
                duration=duration
            )
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

    def _setup_routes(self):
        """Set up common routes and error handlers."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return success_response(
                f"{self.service_name.title()} service is healthy",
                {
                    "service": self.service_name,
                    "status": "ok",
                    "uptime_seconds": round(self._get_uptime(), 3),
                    "dependencies": await self._check_dependencies(),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(AccessLayerException)
        async def access_layer_exception_handler(request: Request, exc: AccessLayerException):
            """Handle AccessLayerException."""
            log = self.logger.error if exc.status_code >= 500 else self.logger.warning
            log(
                "Request failed",
                code=exc.code,
                message=exc.message,
                status_code=exc.status_code,
                details=exc.details,
                path=request.url.path,
            )
            self.metrics.record_error(exc.code)
            return error_response(exc.to_response(), exc.status_code)

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Handle request body/parameter validation failures."""
            fields = validation_errors_to_fields(exc.errors())
            self.logger.warning("Validation error", path=request.url.path, errors=len(fields))
            self.metrics.record_error("VALIDATION_ERROR")
            envelope = ErrorEnvelope(
                message="Validation error",
                error_code="VALIDATION_ERROR",
                errors=fields,
            )
            return error_response(envelope, 400)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Route framework-level HTTP errors through the envelope."""
            if exc.status_code == 404:
                envelope = ErrorEnvelope(message="Route not found", error_code="NOT_FOUND")
            elif exc.status_code == 405:
                envelope = ErrorEnvelope(message="Method not allowed", error_code="METHOD_NOT_ALLOWED")
            else:
                envelope = ErrorEnvelope(message=str(exc.detail), error_code="HTTP_ERROR")
            return error_response(envelope, exc.status_code)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            envelope = ErrorEnvelope(message="Internal server error", error_code="INTERNAL_ERROR")
            return error_response(envelope, 500)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )

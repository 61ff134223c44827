"""
Static route table for the API Gateway.

Routes are matched first-match-wins in declaration order, so narrower
rules (a sub-path, or public read methods on a prefix) have to be declared
before the broader rule that would otherwise swallow them. The table
refuses to start with a route that an earlier one makes unreachable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from shared.config import BaseConfig
from shared.errors import NotFoundError
from shared.identity import Role

API_PREFIX = "/api/v1"


class AuthRequirement(str, Enum):
    NONE = "none"
    REQUIRED = "required"


class PathMatch(str, Enum):
    EXACT = "exact"
    PREFIX = "prefix"


class RouteConfigurationError(ValueError):
    """Raised when the declared routes are inconsistent."""


@dataclass(frozen=True)
class RewriteRule:
    """Replace a leading path prefix."""

    source_prefix: str
    target_prefix: str

    def apply(self, path: str) -> str:
        if not path.startswith(self.source_prefix):
            return path
        remainder = path[len(self.source_prefix):]
        rewritten = self.target_prefix.rstrip("/") + remainder
        return rewritten or "/"


@dataclass(frozen=True)
class Route:
    """Mapping of an inbound method/path onto a backend and its access rules."""

    name: str
    pattern: str
    target: str
    rewrite: RewriteRule
    match: PathMatch = PathMatch.PREFIX
    methods: Optional[FrozenSet[str]] = None
    auth: AuthRequirement = AuthRequirement.NONE
    roles: Optional[FrozenSet[Role]] = None

    def __post_init__(self):
        if not self.pattern.startswith("/"):
            raise RouteConfigurationError(f"Route '{self.name}' pattern must start with '/'")
        if self.methods is not None:
            object.__setattr__(self, "methods", frozenset(m.upper() for m in self.methods))

    @property
    def requires_auth(self) -> bool:
        return self.auth is AuthRequirement.REQUIRED

    def matches_method(self, method: str) -> bool:
        return self.methods is None or method.upper() in self.methods

    def matches_path(self, path: str) -> bool:
        if self.match is PathMatch.EXACT:
            return path.rstrip("/") == self.pattern.rstrip("/")
        prefix = self.pattern.rstrip("/")
        return path == prefix or path.startswith(prefix + "/")

    def matches(self, method: str, path: str) -> bool:
        return self.matches_method(method) and self.matches_path(path)

    def backend_path(self, path: str) -> str:
        return self.rewrite.apply(path)

    def covers(self, other: "Route") -> bool:
        """True when every request ``other`` accepts is already taken by this route."""
        if self.methods is not None and (other.methods is None or not other.methods <= self.methods):
            return False
        if self.match is PathMatch.PREFIX:
            return self.matches_path(other.pattern)
        return other.match is PathMatch.EXACT and self.matches_path(other.pattern)


class RouteTable:
    """Ordered, read-only collection of routes."""

    def __init__(self, routes: Iterable[Route]):
        self._routes: Tuple[Route, ...] = tuple(routes)
        self._check_shadowing()

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self._routes

    def match(self, method: str, path: str) -> Route:
        """Return the first route accepting the request."""
        for route in self._routes:
            if route.matches(method, path):
                return route
        raise NotFoundError("Route not found", details={"method": method, "path": path})

    def _check_shadowing(self) -> None:
        names = set()
        for index, route in enumerate(self._routes):
            if route.name in names:
                raise RouteConfigurationError(f"Duplicate route name '{route.name}'")
            names.add(route.name)
            for earlier in self._routes[:index]:
                if earlier.covers(route):
                    raise RouteConfigurationError(
                        f"Route '{route.name}' is unreachable: shadowed by '{earlier.name}'"
                    )


def _domain_rewrite(domain: str) -> RewriteRule:
    return RewriteRule(f"{API_PREFIX}/{domain}", f"/{domain}")


def build_default_routes(config: BaseConfig) -> List[Route]:
    """Routes for the auth and event services plus any optional backends."""
    auth_rewrite = _domain_rewrite("auth")
    events_rewrite = _domain_rewrite("events")
    organizer_only = frozenset({Role.ORGANIZER})

    routes: List[Route] = [
        Route(
            name="auth-profile",
            pattern=f"{API_PREFIX}/auth/me",
            match=PathMatch.EXACT,
            methods=frozenset({"GET"}),
            target=config.auth_service_url,
            rewrite=auth_rewrite,
            auth=AuthRequirement.REQUIRED,
        ),
        Route(
            name="auth-verify",
            pattern=f"{API_PREFIX}/auth/verify",
            match=PathMatch.EXACT,
            methods=frozenset({"GET"}),
            target=config.auth_service_url,
            rewrite=auth_rewrite,
            auth=AuthRequirement.REQUIRED,
        ),
        Route(
            name="auth-public",
            pattern=f"{API_PREFIX}/auth",
            target=config.auth_service_url,
            rewrite=auth_rewrite,
        ),
        Route(
            name="events-organizer",
            pattern=f"{API_PREFIX}/events/organizer/me",
            match=PathMatch.EXACT,
            methods=frozenset({"GET"}),
            target=config.event_service_url,
            rewrite=events_rewrite,
            auth=AuthRequirement.REQUIRED,
            roles=organizer_only,
        ),
        Route(
            name="events-read",
            pattern=f"{API_PREFIX}/events",
            methods=frozenset({"GET", "HEAD"}),
            target=config.event_service_url,
            rewrite=events_rewrite,
        ),
        Route(
            name="events-write",
            pattern=f"{API_PREFIX}/events",
            methods=frozenset({"POST", "PUT", "PATCH", "DELETE"}),
            target=config.event_service_url,
            rewrite=events_rewrite,
            auth=AuthRequirement.REQUIRED,
            roles=organizer_only,
        ),
    ]

    for domain, url in config.optional_backends().items():
        routes.append(
            Route(
                name=domain,
                pattern=f"{API_PREFIX}/{domain}",
                target=url,
                rewrite=_domain_rewrite(domain),
                auth=AuthRequirement.REQUIRED,
            )
        )

    return routes


def build_route_table(config: BaseConfig, extra_routes: Sequence[Route] = ()) -> RouteTable:
    return RouteTable([*build_default_routes(config), *extra_routes])

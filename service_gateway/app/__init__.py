"""
API Gateway Service package for the MOV Event Platform.

The gateway is the single public entry point. For every request it:
- Rate limits per client address (Redis fixed window)
- Matches a static route table (first match wins)
- Verifies the bearer credential when the route requires it
- Applies the route's role gate
- Forwards to the backend with the caller identity attached

Structure:
- app.main: FastAPI app and the forwarding catch-all.
- app.routing: Route table and default routes.
- app.auth: Bearer credential verification.
- app.domain: Request pipeline and access policy.
- app.adapters: Context forwarder and forwarding engine.
- app.ratelimit: Fixed-window limiter.
"""

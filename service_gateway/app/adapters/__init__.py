"""
Adapters package for the Gateway Service.

Outbound side of the gateway: identity propagation and the HTTP
forwarding engine that relays requests to backend services.
"""

from .context import ContextForwarder
from .forwarder import ForwardingEngine, HOP_BY_HOP_HEADERS

__all__ = [
    "ContextForwarder",
    "ForwardingEngine",
    "HOP_BY_HOP_HEADERS",
]

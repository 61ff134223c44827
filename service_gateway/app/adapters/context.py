"""
Identity propagation to backend services.
"""

from typing import Optional

import httpx

from shared.identity import IDENTITY_HEADERS, Identity


class ContextForwarder:
    """Puts the verified identity on an outbound request.

    Identity headers arriving from the client are always removed first, so
    a backend only ever sees identity the gateway derived itself.
    """

    def strip(self, headers: httpx.Headers) -> None:
        for name in IDENTITY_HEADERS:
            if name in headers:
                del headers[name]

    def attach(self, request: httpx.Request, identity: Optional[Identity]) -> httpx.Request:
        self.strip(request.headers)
        if identity is not None:
            request.headers.update(identity.to_headers())
        return request

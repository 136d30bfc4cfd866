"""
Security headers middleware for HTTP responses.
Runs the configured chain of hardening toggles over every response.
"""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from headerguard.security.chain import PolicyChain


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Applies each header-hardening toggle to all responses, in the order
    the toggles were registered on the chain.
    """

    def __init__(self, app: ASGIApp, chain: PolicyChain) -> None:
        super().__init__(app)
        self.chain = chain

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        self.chain.apply(request, response.headers)
        return response

"""
Starlette middleware that runs the CORS policy around the proxied request.
"""
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .policy import CorsPolicy
from .transaction import Transaction

logger = structlog.get_logger(__name__)


class CORSProxyMiddleware(BaseHTTPMiddleware):
    """
    Runs the request phase before and the response phase after the backend.

    Args:
        app: Downstream ASGI app (the proxy route)
        policy: CORS policy to enforce
        immediate_preflight: Answer preflight requests without forwarding them
    """
    def __init__(self, app: ASGIApp, policy: CorsPolicy, immediate_preflight: bool = True):
        super().__init__(app)
        self.policy = policy
        self.immediate_preflight = immediate_preflight

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        txn = Transaction(
            method=request.method,
            request_headers=request.headers,
            can_reply=self.immediate_preflight,
        )

        self.policy.on_request(txn)

        if txn.finished:
            logger.info(
                "cors.preflight_reply",
                transaction_id=txn.id,
                origin=txn.context.origin,
                path=request.url.path,
                allowed="access-control-allow-origin" in txn.reply.headers,
            )
            return txn.reply

        response = await call_next(request)

        txn.bind_response(response.headers)
        self.policy.on_response(txn)

        return response

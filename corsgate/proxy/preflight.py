"""
Preflight (``OPTIONS``) responses.

With immediate delivery the proxy answers the preflight itself with a 204 and
the backend never sees the request. With deferred delivery the request goes to
the backend and the preflight headers are attached to whatever it returns.
"""

from enum import Enum
from typing import Dict, List, Tuple

from starlette.responses import Response

from corsgate.core.logging_config import get_logger
from corsgate.security.cors import MatchResult, resolve

from .transaction import Transaction, TransactionContext

logger = get_logger(__name__)

PREFLIGHT_MAX_AGE = 600  # seconds
PREFLIGHT_STATUS = 204
PREFLIGHT_CONTENT_TYPE = "text/html"
VARY_VALUE = "Accept-Encoding,Origin"

ALLOW_ORIGIN_HEADER = "Access-Control-Allow-Origin"
ALLOW_METHODS_HEADER = "Access-Control-Allow-Methods"
ALLOW_HEADERS_HEADER = "Access-Control-Allow-Headers"
MAX_AGE_HEADER = "Access-Control-Max-Age"
VARY_HEADER = "Vary"


class DeliveryMode(str, Enum):
    """Where preflight headers end up."""
    IMMEDIATE = "immediate"  # synthesized 204, backend not contacted
    DEFERRED = "deferred"  # attached to the backend response


def origin_headers(result: MatchResult) -> List[Tuple[str, str]]:
    """Allow-Origin and Vary headers for a match result (empty when not allowed)."""
    if not result.allowed:
        return []

    headers = [(ALLOW_ORIGIN_HEADER, result.header_value)]
    # Per-origin answers must not be served from cache to another origin
    if not result.is_wildcard:
        headers.append((VARY_HEADER, VARY_VALUE))
    return headers


class PreflightResponder:
    """Builds preflight headers and delivers them in either mode."""

    def __init__(self, max_age: int = PREFLIGHT_MAX_AGE):
        self.max_age = max_age

    def preflight_headers(self, context: TransactionContext) -> List[Tuple[str, str]]:
        return [
            (ALLOW_METHODS_HEADER, context.allowed_methods),
            (ALLOW_HEADERS_HEADER, context.allowed_headers),
            (MAX_AGE_HEADER, str(self.max_age)),
        ]

    def respond(self, txn: Transaction, context: TransactionContext, mode: DeliveryMode) -> None:
        logger.debug("CORS: preflight request received")
        if mode == DeliveryMode.IMMEDIATE:
            self._reply(txn, context)
        else:
            self._attach(txn, context)

    def _reply(self, txn: Transaction, context: TransactionContext) -> None:
        headers: Dict[str, str] = {"Content-Type": PREFLIGHT_CONTENT_TYPE}
        headers.update(self.preflight_headers(context))

        result = resolve(context.origin, context.allowed_origins)
        if result.allowed:
            logger.debug(f"CORS: {context.origin} allowed")
        else:
            logger.debug(f"CORS: {context.origin} not allowed")
        headers.update(origin_headers(result))

        logger.debug("CORS: returning reply to preflight request")
        txn.done(Response(status_code=PREFLIGHT_STATUS, headers=headers))

    def _attach(self, txn: Transaction, context: TransactionContext) -> None:
        for name, value in self.preflight_headers(context):
            txn.set_response_header(name, value)
        logger.debug("CORS: attaching allowed methods to response")

"""
Two-phase CORS policy.

``on_request`` runs when a request arrives, ``on_response`` when the response
is about to leave. Neither raises: a request the policy does not allow simply
gets no ``Access-Control-Allow-Origin`` header and the browser rejects it.
"""

from typing import Optional

from corsgate.core.config import CORSSettings
from corsgate.core.logging_config import get_logger
from corsgate.security.cors import AllowList, resolve

from .preflight import (
    ALLOW_ORIGIN_HEADER,
    VARY_HEADER,
    VARY_VALUE,
    DeliveryMode,
    PreflightResponder,
)
from .transaction import Transaction, TransactionContext

logger = get_logger(__name__)


class CorsPolicy:
    """
    CORS policy for one proxy listener.

    Args:
        allowed_methods: Comma-delimited methods, e.g. ``"GET,PUT,POST"``
        allowed_origins: Comma-delimited origin entries, e.g. ``"localhost,.example.com"``
        allowed_headers: Comma-delimited headers, e.g. ``"X-Custom-Header"``
        responder: Preflight responder, a default one is created when omitted
    """

    def __init__(
        self,
        allowed_methods: str,
        allowed_origins: str,
        allowed_headers: str,
        responder: Optional[PreflightResponder] = None
    ):
        self.allowed_methods = allowed_methods
        self.allowed_origins = AllowList.parse(allowed_origins)
        self.allowed_headers = allowed_headers
        self.responder = responder or PreflightResponder()

    @classmethod
    def from_settings(cls, settings: CORSSettings) -> "CorsPolicy":
        return cls(
            allowed_methods=settings.allowed_methods,
            allowed_origins=settings.allowed_origins,
            allowed_headers=settings.allowed_headers,
        )

    def on_request(self, txn: Transaction) -> Optional[TransactionContext]:
        """
        Capture the origin for the response phase.

        An ``OPTIONS`` request on a host that can reply is answered here and
        the transaction is finished.

        Returns:
            The stored context, or None when the request carried no Origin
        """
        origin = txn.get_request_header("origin")

        # Not a CORS request, e.g. a plain OPTIONS from a non-browser client
        if not origin:
            return None

        logger.debug(f"CORS: got 'Origin' header: {origin}")

        context = TransactionContext(
            origin=origin,
            method=txn.method,
            allowed_methods=self.allowed_methods,
            allowed_origins=self.allowed_origins,
            allowed_headers=self.allowed_headers,
        )
        txn.context = context

        if context.is_preflight and txn.can_reply:
            self.responder.respond(txn, context, DeliveryMode.IMMEDIATE)

        return context

    def on_response(self, txn: Transaction) -> None:
        """Attach CORS headers to the outgoing response."""
        context = txn.context
        if context is None or txn.finished:
            return

        result = resolve(context.origin, context.allowed_origins)

        if not result.allowed:
            logger.debug(f"CORS: {context.origin} not allowed")
            return

        if context.is_preflight and not txn.can_reply:
            self.responder.respond(txn, context, DeliveryMode.DEFERRED)

        logger.debug(f"CORS: {context.origin} allowed")
        txn.set_response_header(ALLOW_ORIGIN_HEADER, result.header_value)

        if not result.is_wildcard:
            txn.add_response_header(VARY_HEADER, VARY_VALUE)

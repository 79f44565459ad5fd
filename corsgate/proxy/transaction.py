"""
Per-request state shared by the request and response phases.
"""

import uuid
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response

from corsgate.core.logging_config import get_logger
from corsgate.security.cors import AllowList

logger = get_logger(__name__)

PREFLIGHT_METHOD = "OPTIONS"


@dataclass(frozen=True)
class TransactionContext:
    """
    What the request phase captured for the response phase.

    Only created when the request carried a non-empty ``Origin`` header.
    """
    origin: str
    method: str
    allowed_methods: str
    allowed_origins: AllowList
    allowed_headers: str

    @property
    def is_preflight(self) -> bool:
        return self.method == PREFLIGHT_METHOD


class Transaction:
    """
    One request/response pair as seen by the CORS policy.

    The host creates a Transaction when a request arrives and keeps the same
    object until the response leaves, so the context stored by the request
    phase is handed to the response phase by reference.

    Attributes:
        id: Transaction identifier, used for log correlation
        method: Upper-cased request method
        request_headers: Case-insensitive request headers
        can_reply: Whether the host can answer without contacting the backend
        context: Set by the request phase when CORS processing applies
        reply: Synthesized response that finished the transaction early
        response_headers: Headers of the outgoing response
    """

    def __init__(
        self,
        method: str,
        request_headers: Union[Headers, Mapping[str, str], None] = None,
        can_reply: bool = False,
        transaction_id: Optional[str] = None
    ):
        self.id = transaction_id or uuid.uuid4().hex
        self.method = method.upper()
        if isinstance(request_headers, Headers):
            self.request_headers = request_headers
        else:
            self.request_headers = Headers(headers=dict(request_headers or {}))
        self.can_reply = can_reply
        self.context: Optional[TransactionContext] = None
        self.reply: Optional[Response] = None
        self.response_headers = MutableHeaders()

    @property
    def finished(self) -> bool:
        """True once a synthesized reply has ended the transaction."""
        return self.reply is not None

    def get_request_header(self, name: str) -> Optional[str]:
        return self.request_headers.get(name)

    def done(self, reply: Response) -> None:
        """
        End the transaction with a reply; the backend is not contacted.

        Ignored on hosts that cannot synthesize replies, the transaction then
        continues to the backend.
        """
        if not self.can_reply:
            logger.warning(f"CORS: transaction {self.id} cannot reply immediately, reply ignored")
            return
        self.reply = reply

    def bind_response(self, headers: MutableHeaders) -> None:
        """Attach the headers of the response that will be sent to the client."""
        self.response_headers = headers

    def set_response_header(self, name: str, value: object) -> None:
        """Set a response header, replacing any existing value."""
        self.response_headers[name] = str(value)

    def add_response_header(self, name: str, value: object) -> None:
        """Add a response header, keeping existing values."""
        self.response_headers.append(name, str(value))

    def __repr__(self) -> str:
        return f"Transaction(id={self.id!r}, method={self.method!r}, finished={self.finished})"

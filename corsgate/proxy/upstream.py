"""
Forwarding of proxied requests to the backend server.
"""

import time
from typing import List, Optional, Tuple

import httpx
import structlog
from starlette.requests import Request
from starlette.responses import Response

from corsgate.core.exceptions import UpstreamError

logger = structlog.get_logger(__name__)

# RFC 7230 section 6.1
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
})

# httpx decodes the body, so length and encoding no longer describe it
_RESPONSE_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | {"content-length", "content-encoding"}
_REQUEST_EXCLUDED_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length"}


class UpstreamClient:
    """
    HTTP client for the single backend behind the proxy.

    Args:
        backend_url: Base URL of the backend, e.g. ``http://localhost:8000``
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used to plug in a mock backend)
    """

    def __init__(
        self,
        backend_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.backend_url = backend_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.backend_url,
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=False,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "UpstreamClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _request_headers(self, request: Request) -> List[Tuple[str, str]]:
        headers = [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in _REQUEST_EXCLUDED_HEADERS
        ]

        client_ip = request.client.host if request.client else None
        forwarded_for = request.headers.get("x-forwarded-for")
        if client_ip:
            forwarded_for = f"{forwarded_for}, {client_ip}" if forwarded_for else client_ip
        headers = [(name, value) for name, value in headers if name.lower() != "x-forwarded-for"]
        if forwarded_for:
            headers.append(("X-Forwarded-For", forwarded_for))

        headers.append(("X-Forwarded-Proto", request.url.scheme))
        host = request.headers.get("host")
        if host:
            headers.append(("X-Forwarded-Host", host))
        return headers

    async def forward(self, request: Request) -> Response:
        """
        Send the request to the backend and convert the answer.

        Raises:
            UpstreamError: The backend could not be reached or timed out
        """
        await self.start()

        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"

        body = await request.body()
        start_time = time.time()

        try:
            upstream = await self._client.request(
                request.method,
                target,
                headers=self._request_headers(request),
                content=body or None,
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(
                "Backend did not respond in time",
                details={"timeout": self.timeout, "reason": str(e)},
                backend_url=self.backend_url,
                method=request.method,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(
                "Backend is unreachable",
                details={"reason": str(e)},
                backend_url=self.backend_url,
                method=request.method,
            ) from e

        process_time = time.time() - start_time
        logger.info(
            "proxy.forward",
            method=request.method,
            path=request.url.path,
            status_code=upstream.status_code,
            process_time=round(process_time * 1000, 2),  # in milliseconds
        )

        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in upstream.headers.multi_items():
            if name.lower() not in _RESPONSE_EXCLUDED_HEADERS:
                response.headers.append(name, value)

        # A HEAD answer has no body; its length describes the GET representation
        if request.method == "HEAD" and "content-length" in upstream.headers:
            response.headers["content-length"] = upstream.headers["content-length"]
        return response

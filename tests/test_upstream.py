import gzip

import httpx
import pytest
from starlette.requests import Request

from corsgate.core.exceptions import UpstreamError
from corsgate.proxy.upstream import UpstreamClient


def make_request(method="GET", path="/items", query=b"", headers=None, body=b""):
    raw_headers = [(b"host", b"proxy.test")]
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query,
        "headers": raw_headers,
        "client": ("203.0.113.7", 51000),
        "server": ("proxy.test", 443),
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.mark.asyncio
async def test_forward_strips_hop_by_hop_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, headers={"Keep-Alive": "timeout=5", "X-Upstream": "ok"}, text="ok")

    async with UpstreamClient("http://backend.test/", transport=httpx.MockTransport(handler)) as client:
        response = await client.forward(make_request(
            headers={
                "Connection": "keep-alive",
                "Proxy-Authorization": "Basic secret",
                "X-Forwarded-For": "198.51.100.1",
                "Accept": "application/json",
            },
            query=b"q=1",
        ))

    forwarded = seen[0]
    assert str(forwarded.url) == "http://backend.test/items?q=1"
    assert "proxy-authorization" not in forwarded.headers
    assert forwarded.headers["accept"] == "application/json"
    assert forwarded.headers["x-forwarded-for"] == "198.51.100.1, 203.0.113.7"
    assert forwarded.headers["x-forwarded-proto"] == "https"
    assert forwarded.headers["x-forwarded-host"] == "proxy.test"

    assert response.status_code == 200
    assert response.body == b"ok"
    assert response.headers["x-upstream"] == "ok"
    assert "keep-alive" not in response.headers


@pytest.mark.asyncio
async def test_forward_relays_decoded_body():
    payload = b"hello " * 50

    def handler(request):
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip", "Content-Type": "text/plain"},
            content=gzip.compress(payload),
        )

    async with UpstreamClient("http://backend.test", transport=httpx.MockTransport(handler)) as client:
        response = await client.forward(make_request())

    assert response.body == payload
    assert "content-encoding" not in response.headers
    assert response.headers["content-length"] == str(len(payload))


@pytest.mark.asyncio
async def test_forward_maps_connection_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with UpstreamClient("http://backend.test", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(UpstreamError) as exc_info:
            await client.forward(make_request(method="DELETE"))

    error = exc_info.value
    assert error.status_code == 502
    assert error.details["backend_url"] == "http://backend.test"
    assert error.details["method"] == "DELETE"


@pytest.mark.asyncio
async def test_forward_starts_client_lazily_and_close_is_idempotent():
    client = UpstreamClient(
        "http://backend.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(204)),
    )

    response = await client.forward(make_request(method="PUT", body=b"data"))

    assert response.status_code == 204
    await client.close()
    await client.close()

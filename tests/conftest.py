import httpx
import pytest
from fastapi.testclient import TestClient

from corsgate.core.config import Config, CORSSettings, ProxySettings, get_config
from corsgate.main import create_app

BACKEND_URL = "http://backend.test"


class RecordingBackend:
    """httpx handler standing in for the proxied server."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/plain", "X-Backend": "1"},
            text="backend says hi",
        )


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def make_client(backend):
    clients = []

    def factory(
        allowed_origins="example.com",
        allowed_methods="GET,PUT,POST",
        allowed_headers="X-Custom-Header",
        immediate_preflight=True,
        handler=None,
    ):
        config = Config(
            cors=CORSSettings(
                allowed_origins=allowed_origins,
                allowed_methods=allowed_methods,
                allowed_headers=allowed_headers,
                immediate_preflight=immediate_preflight,
            ),
            proxy=ProxySettings(backend_url=BACKEND_URL),
        )
        app = create_app(config, transport=httpx.MockTransport(handler or backend))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture(autouse=True)
def clear_config_cache():
    get_config.cache_clear()
    yield
    get_config.cache_clear()

"""
Application factory and command line entry point for the CORS proxy.
"""
import argparse
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from corsgate import __version__
from corsgate.core.config import Config, LogLevel, get_config
from corsgate.core.exceptions import AppException
from corsgate.core.logging_config import setup_logging
from corsgate.proxy.middleware import CORSProxyMiddleware
from corsgate.proxy.policy import CorsPolicy
from corsgate.proxy.upstream import UpstreamClient

logger = structlog.get_logger(__name__)

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: Optional[Config] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the proxy application.

    Args:
        config: Application configuration, loaded from the environment when omitted
        transport: Optional httpx transport for the backend connection

    Returns:
        FastAPI app forwarding every request to the configured backend
    """
    config = config or get_config()
    upstream = UpstreamClient(
        config.proxy.backend_url,
        timeout=config.proxy.timeout,
        transport=transport,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await upstream.start()
        logger.info(
            "proxy.start",
            backend_url=upstream.backend_url,
            allowed_origins=config.cors.allowed_origins,
            immediate_preflight=config.cors.immediate_preflight,
        )
        yield
        await upstream.close()

    app = FastAPI(
        title=config.app_name,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.upstream = upstream

    app.add_middleware(
        CORSProxyMiddleware,
        policy=CorsPolicy.from_settings(config.cors),
        immediate_preflight=config.cors.immediate_preflight,
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        logger.warning(
            "proxy.upstream_error",
            method=request.method,
            path=request.url.path,
            code=exc.code,
            error_message=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy(request: Request) -> Response:
        return await upstream.forward(request)

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="corsgate",
        description="Reverse proxy that enforces a CORS origin allow-list",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Address to listen on")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--backend", help="Backend base URL, e.g. http://localhost:8000")
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
        help="Log level",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    config = get_config(args.config)

    proxy_overrides = {}
    if args.host:
        proxy_overrides["host"] = args.host
    if args.port:
        proxy_overrides["port"] = args.port
    if args.backend:
        proxy_overrides["backend_url"] = args.backend
    if proxy_overrides:
        config.proxy = config.proxy.model_validate({**config.proxy.model_dump(), **proxy_overrides})
    if args.log_level:
        config.logging = config.logging.model_copy(update={"level": LogLevel(args.log_level)})

    setup_logging(config.logging)

    uvicorn.run(
        create_app(config),
        host=config.proxy.host,
        port=config.proxy.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

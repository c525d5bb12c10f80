"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_proxy
from core.config import Config
from core.headers import HeaderRewriter
from core.protocols import RequestLogger
from core.translator import RequestTranslator
from services.forwarding_service import ForwardingService
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    forwarding = config.forwarding
    max_body_size = config.limits.max_body_size

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(
            max_connections=config.limits.max_connections,
            max_keepalive_connections=config.limits.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=forwarding.timeout,
            limits=limits,
            transport=transport,
        )
        app.state.upstream_client = UpstreamClient(client, logger, forwarding.allowed_origins)
        app.state.forwarding_service = ForwardingService(
            config=config,
            logger=logger,
            translator=RequestTranslator(
                forwarding.allowed_origins,
                forwarding.collapse_slash_markers,
            ),
            header_rewriter=HeaderRewriter(),
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Archive Proxy", version="0.1.0", lifespan=lifespan)

    @app.get("/")
    async def proxy_get(request: Request):
        return await handle_proxy(request, "GET", max_body_size, logger)

    @app.post("/")
    async def proxy_post(request: Request):
        return await handle_proxy(request, "POST", max_body_size, logger)

    return app

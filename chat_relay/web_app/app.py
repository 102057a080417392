"""FastAPI app exposing the chat relay endpoint."""

from __future__ import annotations

import logging
from typing import Optional

from diagnostics import TraceRecorder, scoped_recorder
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..config import Settings, load_settings
from ..relay import Relay, RelayResponse
from .dev_proxy import dev_upstream_url

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"

# Every method reaches the relay so rejections carry its JSON error body.
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def _relay_request(
    relay: Relay,
    request: Request,
    *,
    upstream_url: Optional[str] = None,
) -> JSONResponse:
    payload = await request.body()
    headers = dict(request.headers)
    recorder = TraceRecorder(label=f"{request.method} {request.url.path}")

    def run() -> RelayResponse:
        with scoped_recorder(recorder):
            return relay.handle_raw(request.method, headers, payload, upstream_url=upstream_url)

    result = await run_in_threadpool(run)
    logger.debug(recorder.report())
    return JSONResponse(status_code=result.status, content=result.body)


def create_app(settings: Optional[Settings] = None, relay: Optional[Relay] = None) -> FastAPI:
    """Build the relay application; suitable as a ``uvicorn --factory`` target."""

    resolved = settings or load_settings()
    chat_relay = relay or Relay.from_settings(resolved)

    app = FastAPI(title="Chat Relay", default_response_class=JSONResponse)
    app.state.settings = resolved
    app.state.relay = chat_relay

    if resolved.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route(CHAT_PATH, methods=ALL_METHODS)
    async def chat(request: Request) -> JSONResponse:
        """Forward a chat completion request to the upstream API."""

        return await _relay_request(chat_relay, request)

    if resolved.is_development:
        _mount_dev_rewrite(app, resolved, chat_relay)

    return app


def _mount_dev_rewrite(app: FastAPI, settings: Settings, relay: Relay) -> None:
    prefix = "/" + settings.dev_proxy_prefix.strip("/")

    async def rewritten(request: Request) -> JSONResponse:
        url = dev_upstream_url(
            request.url.path,
            prefix=prefix,
            base_url=settings.upstream_base_url,
            target_path=settings.upstream_path,
        )
        return await _relay_request(relay, request, upstream_url=url)

    paths = [prefix + "/{rest:path}"]
    if prefix != CHAT_PATH:
        paths.insert(0, prefix)
    for path in paths:
        app.add_api_route(path, rewritten, methods=ALL_METHODS, include_in_schema=False)
    logger.info("Development rewrite active: %s* -> %s", prefix, settings.upstream_url)


__all__ = ["ALL_METHODS", "CHAT_PATH", "create_app"]

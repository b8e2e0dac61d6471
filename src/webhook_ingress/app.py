from __future__ import annotations

import argparse
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from .config import WebhookConfig, get_config, load_config
from .errors import AddressResolutionError
from .gate import AddressGate
from .handler import PayloadHandler
from .log import configure_logging, log_json
from .ports.publish_port import PublishPort
from .publishers.factory import create_publisher


def _get_version() -> str:
    try:
        return version("webhook-ingress")
    except PackageNotFoundError:
        return "unknown"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def create_app(
    config: WebhookConfig | None = None,
    publisher: PublishPort | None = None,
) -> FastAPI:
    cfg = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.log_level)
        app.state.publisher = publisher or create_publisher(cfg)
        app.state.gate = AddressGate.from_config(cfg)
        app.state.handler = PayloadHandler.from_config(cfg, app.state.gate, app.state.publisher)
        try:
            yield
        finally:
            await app.state.publisher.close()

    app = FastAPI(title="Webhook Ingress", version=_get_version(), lifespan=lifespan)

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        request_id = request.headers.get("x-request-id", "").strip() or uuid.uuid4().hex
        fields = {"request_id": request_id, "method": request.method, "path": request.url.path}
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log_json(logging.ERROR, "request.failed", latency_ms=_elapsed_ms(started), **fields)
            raise
        response.headers["x-request-id"] = request_id
        log_json(
            logging.INFO,
            "request.completed",
            status_code=response.status_code,
            latency_ms=_elapsed_ms(started),
            **fields,
        )
        return response

    @app.exception_handler(AddressResolutionError)
    async def address_resolution_failed(request: Request, exc: AddressResolutionError):
        log_json(
            logging.ERROR,
            "address.unresolved",
            path=request.url.path,
            error=str(exc),
        )
        return PlainTextResponse("internal server error", status_code=500)

    @app.get("/healthz")
    async def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.post(cfg.webhook_path)
    async def webhook(request: Request) -> Response:
        return await app.state.handler.handle(request)

    return app


def main() -> None:
    args = _parse_args()
    config = load_config()
    port = args.port or config.port
    app = create_app(config)
    configure_logging(config.log_level)
    log_json(logging.INFO, "server.listening", host=args.host, port=port, path=config.webhook_path)
    uvicorn.run(app, host=args.host, port=port, reload=False)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="webhook-ingress")
    sub = parser.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve")
    serve.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=None)
    return parser.parse_args()

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

import anyio
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from structlog import contextvars as structlog_contextvars

from .config import Settings, settings as default_settings
from .errors import PersistenceError
from .lifecycle import StateManager
from .logging import configure_logging, logger
from .persistence import StateFileGateway
from .routers import flashcards, health


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit one structured `request_complete` line per request.

    `request_id` を採番して ContextVar に束ね、ハンドラ内のログとも突合できるようにする。
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:  # type: ignore[override]
        start = time.time()
        request_id = request.headers.get("x-request-id") or uuid4().hex
        request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        is_error = False
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception:
            is_error = True
            status_code = 500
            raise
        finally:
            latency_ms = (time.time() - start) * 1000
            log_method = logger.error if is_error else logger.info
            log_method(
                "request_complete",
                path=request.url.path,
                method=request.method,
                status_code=status_code,
                latency_ms=round(latency_ms, 2),
                is_error=is_error,
            )
            structlog_contextvars.unbind_contextvars("request_id")


async def _autosave_loop(manager: StateManager, interval_seconds: float) -> None:
    """Periodically persist the store; failures are logged and retried next tick."""
    while True:
        await anyio.sleep(interval_seconds)
        try:
            await manager.save()
        except PersistenceError as exc:
            logger.error("autosave_failed", error=str(exc))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    manager: StateManager = app.state.manager
    interval = manager.settings.autosave_interval_seconds
    await manager.initialize()
    async with anyio.create_task_group() as tg:
        if interval > 0:
            tg.start_soon(_autosave_loop, manager, interval)
        try:
            yield
        finally:
            tg.cancel_scope.cancel()
    try:
        await manager.shutdown()
    except PersistenceError:
        # shutdown_failed が立つので、プロセス側で非ゼロ終了させる
        logger.error("lifespan_shutdown_failed", exit_status=1)


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[StateManager] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = settings or default_settings
    configure_logging(settings.log_level)
    if manager is None:
        manager = StateManager(StateFileGateway(settings.state_file_path), settings)

    app = FastAPI(title="Bucketdeck API", version="0.1.0", lifespan=lifespan)
    app.state.manager = manager

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    # ワイルドカード許可時は資格情報を無効化する
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AccessLogMiddleware)

    app.include_router(flashcards.router, prefix="/api")
    app.include_router(health.router)
    return app


app = create_app()

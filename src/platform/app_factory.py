"""
FastAPI app factory shared by src.main and the test client.

Routers: `/api/seat-hold` (HTTP) and the seat selection WebSocket.
Common endpoints: `/health`, `/metrics`.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import TracingConfig
from src.service.seat_hold.driving_adapter.http_controller.seat_hold_controller import (
    router as seat_hold_router,
)
from src.service.seat_hold.driving_adapter.ws_controller.seat_hold_ws_controller import (
    router as seat_hold_ws_router,
)


SERVICE_NAME = 'seat-hold-service'


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
) -> FastAPI:
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description='Real-time cinema seat hold coordinator',
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Instrument before routes are mounted
    TracingConfig(service_name=SERVICE_NAME).instrument_fastapi(app=app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    app.include_router(seat_hold_router, prefix='/api/seat-hold', tags=['seat-hold'])
    app.include_router(seat_hold_ws_router, tags=['seat-hold-ws'])

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        return {'status': 'healthy', 'service': settings.PROJECT_NAME}

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app

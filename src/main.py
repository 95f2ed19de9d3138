"""
Seat Hold Service - FastAPI Application

Real-time seat selection over WebSocket plus the admin/statistics HTTP API.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.platform.app_factory import SERVICE_NAME, create_app
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.service.seat_hold.driven_adapter.model import booking_model, showtime_model  # noqa: F401


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Seat Hold Service] Starting up...')

    tracing = TracingConfig(service_name=SERVICE_NAME)
    tracing.setup()
    Logger.base.info('📊 [Seat Hold Service] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Seat Hold Service] Dependency injection wired')

    database = container.database()
    tracing.instrument_sqlalchemy(engine=database.engine)
    Logger.base.info('🗄️  [Seat Hold Service] Database engine ready + instrumented')

    coordinator = container.seat_hold_coordinator()
    await coordinator.start()

    try:
        yield
    finally:
        Logger.base.info('🛑 [Seat Hold Service] Shutting down...')
        await coordinator.shutdown()
        await database.close()
        tracing.shutdown()
        container.unwire()
        Logger.base.info('👋 [Seat Hold Service] Shutdown complete')


app = create_app(lifespan=lifespan)

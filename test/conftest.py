"""
Test Configuration and Fixtures

Environment must be set before application modules import settings.

Fixtures:
- clock: manual clock driving hold expiry
- hold_store: HoldStore on the manual clock
- inventory_repo / booking_repo: AsyncMock durable store (seats A1-A4, B1-B2)
- make_session: sessions whose outbound messages are recorded
- seat_hold: fully wired coordinator over the fakes above
- client: FastAPI TestClient with the DI container pointed at `seat_hold`
"""

import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)
    os.environ.setdefault('SECRET_KEY', 'unit_test_secret_key')


_early_setup_test_environment()

from collections.abc import AsyncIterator, Iterator  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from typing import Any, Callable, Optional  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

from dependency_injector import providers  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from src.platform.app_factory import create_app  # noqa: E402
from src.platform.config.di import container  # noqa: E402
from src.platform.config.wire_modules import WIRE_MODULES  # noqa: E402
from src.service.seat_hold.app.background.disconnect_reconciler import (  # noqa: E402
    DisconnectReconciler,
)
from src.service.seat_hold.app.background.expiration_sweeper import ExpirationSweeper  # noqa: E402
from src.service.seat_hold.app.command.booking_finalizer import BookingFinalizer  # noqa: E402
from src.service.seat_hold.app.command.conflict_resolver import ConflictResolver  # noqa: E402
from src.service.seat_hold.app.command.seats_state_publisher import (  # noqa: E402
    SeatsStatePublisher,
)
from src.service.seat_hold.app.query.get_seats_state_use_case import (  # noqa: E402
    GetSeatsStateUseCase,
)
from src.service.seat_hold.app.seat_hold_coordinator import SeatHoldCoordinator  # noqa: E402
from src.service.seat_hold.domain.entity.session import Session  # noqa: E402
from src.service.seat_hold.driven_adapter.broadcaster.session_registry import (  # noqa: E402
    SessionRegistry,
)
from src.service.seat_hold.driven_adapter.state.hold_store import HoldStore  # noqa: E402
from src.service.seat_hold.driving_adapter.http_controller.auth.jwt_auth import (  # noqa: E402
    JwtAuth,
)


SHOWTIME_ID = 1
SEAT_INVENTORY = ['A1', 'A2', 'A3', 'A4', 'B1', 'B2']
HOLD_TTL = 300.0
GRACE_SECONDS = 0.05


class ManualClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingChannel:
    """Session channel that keeps every delivered message"""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.open = True

    @property
    def is_open(self) -> bool:
        return self.open

    def deliver(self, message: dict[str, Any]) -> bool:
        if not self.open:
            return False
        self.messages.append(message)
        return True

    def events(self) -> list[str]:
        return [message['event'] for message in self.messages]

    def of(self, event: str) -> list[dict[str, Any]]:
        return [message['data'] for message in self.messages if message['event'] == event]

    def last(self, event: str) -> Optional[dict[str, Any]]:
        found = self.of(event)
        return found[-1] if found else None

    def clear(self) -> None:
        self.messages.clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def hold_store(clock: ManualClock) -> HoldStore:
    return HoldStore(clock=clock, max_holds_per_user=4, max_extensions=2)


@pytest.fixture
def inventory_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.list_seat_ids.return_value = list(SEAT_INVENTORY)
    repo.list_confirmed_seat_ids.return_value = set()
    repo.find_confirmed_seat_ids.return_value = set()
    return repo


@pytest.fixture
def booking_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.create_booking.side_effect = lambda *, booking: booking
    return repo


@pytest.fixture
def make_session() -> Callable[..., Session]:
    counter = {'n': 0}

    def _make(user_id: int, connection_id: Optional[str] = None) -> Session:
        counter['n'] += 1
        return Session(
            connection_id=connection_id or f'conn-{counter["n"]}',
            user_id=user_id,
            channel=RecordingChannel(),
        )

    return _make


@pytest.fixture
def seat_hold(
    hold_store: HoldStore, inventory_repo: AsyncMock, booking_repo: AsyncMock, clock: ManualClock
) -> SimpleNamespace:
    registry = SessionRegistry()
    get_seats_state = GetSeatsStateUseCase(
        hold_store=hold_store, seat_inventory_repo=inventory_repo
    )
    publisher = SeatsStatePublisher(get_seats_state_use_case=get_seats_state, broadcaster=registry)
    resolver = ConflictResolver(
        hold_store=hold_store, seat_inventory_repo=inventory_repo, hold_ttl_seconds=HOLD_TTL
    )
    sweeper = ExpirationSweeper(hold_store=hold_store, publisher=publisher, interval_seconds=60)
    reconciler = DisconnectReconciler(
        hold_store=hold_store, publisher=publisher, grace_seconds=GRACE_SECONDS
    )
    finalizer = BookingFinalizer(hold_store=hold_store, booking_command_repo=booking_repo)
    coordinator = SeatHoldCoordinator(
        hold_store=hold_store,
        broadcaster=registry,
        get_seats_state_use_case=get_seats_state,
        publisher=publisher,
        conflict_resolver=resolver,
        expiration_sweeper=sweeper,
        disconnect_reconciler=reconciler,
        booking_finalizer=finalizer,
        hold_ttl_seconds=HOLD_TTL,
        hold_extension_seconds=60,
    )
    return SimpleNamespace(
        clock=clock,
        store=hold_store,
        registry=registry,
        inventory_repo=inventory_repo,
        booking_repo=booking_repo,
        get_seats_state=get_seats_state,
        publisher=publisher,
        resolver=resolver,
        sweeper=sweeper,
        reconciler=reconciler,
        finalizer=finalizer,
        coordinator=coordinator,
    )


@pytest.fixture
def jwt_auth() -> JwtAuth:
    return JwtAuth()


@pytest.fixture
def client(seat_hold: SimpleNamespace) -> Iterator[TestClient]:
    """App wired to the in-memory coordinator; lifespan starts and stops it"""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container.wire(modules=WIRE_MODULES)
        container.seat_hold_coordinator.override(providers.Object(seat_hold.coordinator))
        await seat_hold.coordinator.start()
        try:
            yield
        finally:
            await seat_hold.coordinator.shutdown()
            container.seat_hold_coordinator.reset_override()
            container.unwire()

    app = create_app(lifespan=lifespan, title_suffix=' (Test)')
    with TestClient(app) as test_client:
        yield test_client

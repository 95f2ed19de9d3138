"""
Unit tests for the PostgreSQL repositories (session factory mocked)

Test Coverage:
1. Booking write: one transaction, parent row flushed before seat rows
2. Unique-index violation -> SeatConflictError, other DB failures -> PersistenceError
3. Seat inventory: row/column seat ids, unknown showtime, TTL cache
4. Confirmed seat reads and their failure mapping
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.platform.exception.exceptions import PersistenceError, SeatConflictError
from src.service.seat_hold.domain.entity.booking import Booking
from src.service.seat_hold.driven_adapter.model.booking_model import (
    BookingModel,
    BookingSeatModel,
)
from src.service.seat_hold.driven_adapter.repo.booking_command_repo_impl import (
    BookingCommandRepoImpl,
)
from src.service.seat_hold.driven_adapter.repo.seat_inventory_query_repo_impl import (
    SeatInventoryQueryRepoImpl,
)


pytestmark = pytest.mark.unit


def build_session() -> MagicMock:
    session = MagicMock()

    @asynccontextmanager
    async def begin():
        yield

    session.begin = begin
    session.flush = AsyncMock()
    session.scalar = AsyncMock()
    session.scalars = AsyncMock()
    session.execute = AsyncMock()
    return session


def session_factory_for(session: MagicMock):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


def make_booking(seat_ids=('A1', 'A2')) -> Booking:
    return Booking.create(
        user_id=7, showtime_id=1, seat_ids=list(seat_ids), total_amount=Decimal('30.00')
    )


class TestBookingCommandRepo:
    def setup_method(self):
        self.session = build_session()
        self.repo = BookingCommandRepoImpl(session_factory=session_factory_for(self.session))

    @pytest.mark.asyncio
    async def test_writes_booking_and_seat_rows(self):
        # Given
        booking = make_booking()

        # When
        result = await self.repo.create_booking(booking=booking)

        # Then
        assert result is booking
        parent = self.session.add.call_args.args[0]
        assert isinstance(parent, BookingModel)
        assert parent.total_amount == Decimal('30.00')
        self.session.flush.assert_awaited_once()
        seat_rows = self.session.add_all.call_args.args[0]
        assert [row.seat_id for row in seat_rows] == ['A1', 'A2']
        assert all(isinstance(row, BookingSeatModel) for row in seat_rows)
        assert all(row.price == Decimal('15.00') for row in seat_rows)

    @pytest.mark.asyncio
    async def test_unique_violation_is_seat_conflict(self):
        self.session.flush.side_effect = IntegrityError('INSERT', {}, Exception('duplicate'))

        with pytest.raises(SeatConflictError) as exc_info:
            await self.repo.create_booking(booking=make_booking())

        assert exc_info.value.reason == SeatConflictError.SEAT_ALREADY_BOOKED

    @pytest.mark.asyncio
    async def test_database_error_is_persistence_error(self):
        self.session.flush.side_effect = OperationalError('INSERT', {}, Exception('gone'))

        with pytest.raises(PersistenceError):
            await self.repo.create_booking(booking=make_booking())

    @pytest.mark.asyncio
    async def test_unreachable_database_is_persistence_error(self):
        self.session.flush.side_effect = ConnectionRefusedError('refused')

        with pytest.raises(PersistenceError):
            await self.repo.create_booking(booking=make_booking())


class TestSeatInventoryQueryRepo:
    def setup_method(self):
        self.session = build_session()
        self.repo = SeatInventoryQueryRepoImpl(
            session_factory_for(self.session), ttl_seconds=60
        )

    @pytest.mark.asyncio
    async def test_lists_seat_ids_from_layout(self):
        # Given
        self.session.scalar.return_value = 3
        rows = MagicMock()
        rows.all.return_value = [('A', 1), ('A', 2), ('B', 10)]
        self.session.execute.return_value = rows

        # When
        seat_ids = await self.repo.list_seat_ids(showtime_id=1)

        # Then
        assert seat_ids == ['A1', 'A2', 'B10']

    @pytest.mark.asyncio
    async def test_inventory_is_cached(self):
        self.session.scalar.return_value = 3
        rows = MagicMock()
        rows.all.return_value = [('A', 1)]
        self.session.execute.return_value = rows

        await self.repo.list_seat_ids(showtime_id=1)
        await self.repo.list_seat_ids(showtime_id=1)

        self.session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_showtime_returns_none(self):
        self.session.scalar.return_value = None

        assert await self.repo.list_seat_ids(showtime_id=404) is None
        self.session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inventory_failure_is_persistence_error(self):
        self.session.scalar.side_effect = OperationalError('SELECT', {}, Exception('down'))

        with pytest.raises(PersistenceError):
            await self.repo.list_seat_ids(showtime_id=1)

    @pytest.mark.asyncio
    async def test_confirmed_seat_ids(self):
        scalars = MagicMock()
        scalars.all.return_value = ['A1', 'B2']
        self.session.scalars.return_value = scalars

        assert await self.repo.list_confirmed_seat_ids(showtime_id=1) == {'A1', 'B2'}

    @pytest.mark.asyncio
    async def test_find_confirmed_with_empty_input_skips_query(self):
        assert await self.repo.find_confirmed_seat_ids(showtime_id=1, seat_ids=[]) == set()
        self.session.scalars.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirmed_read_failure_is_persistence_error(self):
        self.session.scalars.side_effect = ConnectionResetError('reset')

        with pytest.raises(PersistenceError):
            await self.repo.find_confirmed_seat_ids(showtime_id=1, seat_ids=['A1'])

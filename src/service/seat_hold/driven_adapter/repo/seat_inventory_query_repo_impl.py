"""Seat inventory and confirmed-seat lookups against PostgreSQL"""

import time
from typing import AsyncContextManager, Callable, Optional, TypedDict

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import PersistenceError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.interface.i_seat_inventory_query_repo import (
    ISeatInventoryQueryRepo,
)
from src.service.seat_hold.domain.entity.booking import BookingStatus
from src.service.seat_hold.driven_adapter.model.booking_model import (
    BookingModel,
    BookingSeatModel,
)
from src.service.seat_hold.driven_adapter.model.showtime_model import (
    SeatLayoutModel,
    ShowtimeModel,
)


class InventoryCacheEntry(TypedDict):
    seat_ids: list[str]
    timestamp: float


class SeatInventoryQueryRepoImpl(ISeatInventoryQueryRepo):
    """
    Seat layouts change rarely, so inventory is cached per showtime for a short
    TTL. Confirmed seats are never cached here; they are read on every call.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncContextManager[AsyncSession]],
        *,
        ttl_seconds: float = settings.SEAT_INVENTORY_CACHE_TTL_SECONDS,
    ) -> None:
        self.session_factory = session_factory
        self.tracer = trace.get_tracer(__name__)
        self._cache: dict[int, InventoryCacheEntry] = {}
        self._ttl_seconds = ttl_seconds

    def _cached(self, showtime_id: int) -> Optional[list[str]]:
        entry = self._cache.get(showtime_id)
        if entry is None or time.time() - entry['timestamp'] > self._ttl_seconds:
            return None
        return entry['seat_ids']

    @Logger.io
    async def list_seat_ids(self, *, showtime_id: int) -> Optional[list[str]]:
        with self.tracer.start_as_current_span(
            'repo.list_seat_ids', attributes={'showtime.id': showtime_id}
        ) as span:
            if (cached := self._cached(showtime_id)) is not None:
                span.set_attribute('cache_hit', True)
                return cached

            span.set_attribute('cache_hit', False)
            try:
                async with self.session_factory() as session:
                    room_id = await session.scalar(
                        select(ShowtimeModel.cinema_room_id).where(
                            ShowtimeModel.id == showtime_id,
                            ShowtimeModel.is_active.is_(True),
                        )
                    )
                    if room_id is None:
                        return None

                    rows = await session.execute(
                        select(SeatLayoutModel.row_label, SeatLayoutModel.column_number)
                        .where(
                            SeatLayoutModel.cinema_room_id == room_id,
                            SeatLayoutModel.is_active.is_(True),
                        )
                        .order_by(SeatLayoutModel.row_label, SeatLayoutModel.column_number)
                    )
                    seat_ids = [f'{row_label}{column}' for row_label, column in rows.all()]
            except (SQLAlchemyError, OSError) as e:
                raise PersistenceError(f'Failed to load seats for showtime {showtime_id}') from e

            self._cache[showtime_id] = {'seat_ids': seat_ids, 'timestamp': time.time()}
            return seat_ids

    @Logger.io
    async def list_confirmed_seat_ids(self, *, showtime_id: int) -> set[str]:
        return await self._confirmed(showtime_id=showtime_id, seat_ids=None)

    @Logger.io
    async def find_confirmed_seat_ids(self, *, showtime_id: int, seat_ids: list[str]) -> set[str]:
        if not seat_ids:
            return set()
        return await self._confirmed(showtime_id=showtime_id, seat_ids=seat_ids)

    async def _confirmed(self, *, showtime_id: int, seat_ids: Optional[list[str]]) -> set[str]:
        query = (
            select(BookingSeatModel.seat_id)
            .join(BookingModel, BookingModel.id == BookingSeatModel.booking_id)
            .where(
                BookingSeatModel.showtime_id == showtime_id,
                BookingSeatModel.is_active.is_(True),
                BookingModel.status != BookingStatus.CANCELLED.value,
            )
        )
        if seat_ids is not None:
            query = query.where(BookingSeatModel.seat_id.in_(seat_ids))

        try:
            async with self.session_factory() as session:
                result = await session.scalars(query)
                return set(result.all())
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(
                f'Failed to load confirmed seats for showtime {showtime_id}'
            ) from e

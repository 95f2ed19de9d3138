"""
Booking Command Repository Implementation

Writes the booking and all of its seat rows in one transaction. The partial
unique index on booking_seat is what makes a seat bookable only once, even
across server instances.
"""

import uuid
from typing import AsyncContextManager, Callable

from opentelemetry import trace
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import PersistenceError, SeatConflictError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.interface.i_booking_command_repo import IBookingCommandRepo
from src.service.seat_hold.domain.entity.booking import Booking
from src.service.seat_hold.driven_adapter.model.booking_model import (
    BookingModel,
    BookingSeatModel,
)


class BookingCommandRepoImpl(IBookingCommandRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def create_booking(self, *, booking: Booking) -> Booking:
        with self.tracer.start_as_current_span(
            'repo.create_booking',
            attributes={
                'booking.id': str(booking.id),
                'showtime.id': booking.showtime_id,
                'user.id': booking.user_id,
                'seat.count': len(booking.seat_ids),
            },
        ):
            booking_uuid = uuid.UUID(str(booking.id))
            price = booking.amount_per_seat()

            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        session.add(
                            BookingModel(
                                id=booking_uuid,
                                user_id=booking.user_id,
                                showtime_id=booking.showtime_id,
                                status=booking.status.value,
                                total_amount=booking.total_amount,
                                created_at=booking.created_at,
                            )
                        )
                        # Flush the parent first so seat rows satisfy the foreign key
                        await session.flush()
                        session.add_all(
                            [
                                BookingSeatModel(
                                    booking_id=booking_uuid,
                                    showtime_id=booking.showtime_id,
                                    seat_id=seat_id,
                                    price=price,
                                )
                                for seat_id in booking.seat_ids
                            ]
                        )
            except IntegrityError as e:
                Logger.base.warning(
                    f'⚠️ [BOOKING] Seats already booked for showtime {booking.showtime_id}: '
                    f'{booking.seat_ids}'
                )
                raise SeatConflictError(
                    'One or more seats were booked by someone else',
                    reason=SeatConflictError.SEAT_ALREADY_BOOKED,
                ) from e
            except SQLAlchemyError as e:
                Logger.base.error(f'❌ [BOOKING] Commit failed for booking {booking.id}: {e}')
                raise PersistenceError('Booking could not be saved, please retry') from e
            except OSError as e:
                # asyncpg surfaces refused/dropped connections as OSError subclasses
                Logger.base.error(f'❌ [BOOKING] Database unreachable: {e}')
                raise PersistenceError('Booking store is unavailable, please retry') from e

            Logger.base.info(
                f'✅ [BOOKING] Saved booking {booking.id} with {len(booking.seat_ids)} seats'
            )
            return booking

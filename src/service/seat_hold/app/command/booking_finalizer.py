"""
Booking Finalizer

Converts a set of seats held by the caller into one durable booking.

Flow:
1. Pin every requested hold (all-or-nothing, no await in between)
   - any seat not held by the caller rejects the whole request
   - pinned holds are skipped by the sweeper and cannot be released meanwhile
2. Write the booking and all its seats in one durable transaction
3. Success: drop the holds and remember the seats as confirmed
   Failure: unpin, holds stay HELD with their original expiry
"""

from decimal import Decimal
import time

from opentelemetry import trace

from src.platform.exception.exceptions import BookingInProgressError, NotHolderError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.platform.observability.tracing import record_span_error
from src.service.seat_hold.app.interface import IBookingCommandRepo, IHoldStore
from src.service.seat_hold.domain.entity.booking import Booking
from src.service.seat_hold.domain.value_object.seat_key import HolderRef


class BookingFinalizer:
    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        booking_command_repo: IBookingCommandRepo,
    ) -> None:
        self.hold_store = hold_store
        self.booking_command_repo = booking_command_repo
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def finalize(
        self,
        *,
        showtime_id: int,
        seat_ids: list[str],
        holder: HolderRef,
        total_amount: Decimal,
    ) -> Booking:
        with self.tracer.start_as_current_span(
            'booking_finalizer.finalize',
            attributes={
                'showtime.id': showtime_id,
                'user.id': holder.user_id,
                'seat.count': len(seat_ids),
            },
        ) as span:
            started = time.perf_counter()

            pin = self.hold_store.pin(showtime_id, seat_ids, holder)
            if not pin.ok:
                metrics.record_booking_commit(
                    showtime_id=showtime_id,
                    result='rejected',
                    duration=time.perf_counter() - started,
                )
                if pin.in_progress and not (pin.not_held or pin.not_holder):
                    raise BookingInProgressError(
                        f'Seats {pin.in_progress} are already being booked'
                    )
                Logger.base.warning(
                    f'🚫 [FINALIZER] User {holder.user_id} does not hold '
                    f'{pin.rejected_seat_ids} of showtime {showtime_id}'
                )
                raise NotHolderError(
                    f'Seats not held by you: {", ".join(pin.rejected_seat_ids)}',
                    seat_ids=pin.rejected_seat_ids,
                )

            committed = False
            try:
                booking = Booking.create(
                    user_id=holder.user_id,
                    showtime_id=showtime_id,
                    seat_ids=seat_ids,
                    total_amount=total_amount,
                )
                booking = await self.booking_command_repo.create_booking(booking=booking)
                committed = True
            except Exception as e:
                record_span_error(e, error_type='booking_commit_failed')
                metrics.record_booking_commit(
                    showtime_id=showtime_id,
                    result='failed',
                    duration=time.perf_counter() - started,
                )
                raise
            finally:
                if committed:
                    self.hold_store.confirm(showtime_id, seat_ids)
                else:
                    self.hold_store.unpin(showtime_id, seat_ids)

            metrics.record_booking_commit(
                showtime_id=showtime_id,
                result='confirmed',
                duration=time.perf_counter() - started,
            )
            span.set_attribute('booking.id', str(booking.id))
            Logger.base.info(
                f'🎟️ [FINALIZER] Booking {booking.id} confirmed: showtime {showtime_id}, '
                f'seats {seat_ids}, user {holder.user_id}'
            )
            return booking

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum

import attrs
import uuid_utils


class BookingStatus(StrEnum):
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'  # Set by the external cancellation flow; frees the seats


@attrs.define
class Booking:
    id: uuid_utils.UUID
    user_id: int
    showtime_id: int
    seat_ids: list[str]
    total_amount: Decimal
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls, *, user_id: int, showtime_id: int, seat_ids: list[str], total_amount: Decimal
    ) -> 'Booking':
        if not seat_ids:
            raise ValueError('A booking needs at least one seat')
        if total_amount < 0:
            raise ValueError('Total amount cannot be negative')
        return cls(
            id=uuid_utils.uuid7(),
            user_id=user_id,
            showtime_id=showtime_id,
            seat_ids=list(seat_ids),
            total_amount=total_amount,
        )

    def amount_per_seat(self) -> Decimal:
        return (self.total_amount / len(self.seat_ids)).quantize(Decimal('0.01'))

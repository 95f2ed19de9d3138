"""
Seat Snapshot DTOs

Point-in-time view of every seat of a showtime, as sent in `seats-state`.
"""

from typing import Any, Optional

import attrs

from src.service.seat_hold.domain.enum.seat_state import SeatState


@attrs.frozen
class SeatView:
    seat_id: str
    state: SeatState
    holder_user_id: Optional[int] = None
    expires_at: Optional[float] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {'seat_id': self.seat_id, 'state': self.state.value}
        if self.state == SeatState.HELD:
            payload['holder_user_id'] = self.holder_user_id
            payload['expires_at'] = self.expires_at
        return payload


@attrs.frozen
class SeatsSnapshot:
    showtime_id: int
    seats: tuple[SeatView, ...]

    def count(self, state: SeatState) -> int:
        return sum(1 for seat in self.seats if seat.state == state)

    def state_of(self, seat_id: str) -> Optional[SeatState]:
        for seat in self.seats:
            if seat.seat_id == seat_id:
                return seat.state
        return None

    def to_payload(self) -> dict[str, Any]:
        return {
            'showtime_id': self.showtime_id,
            'seats': [seat.to_payload() for seat in self.seats],
            'summary': {
                'available': self.count(SeatState.AVAILABLE),
                'held': self.count(SeatState.HELD),
                'confirmed': self.count(SeatState.CONFIRMED),
            },
        }

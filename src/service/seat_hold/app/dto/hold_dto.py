"""Seat Hold Result DTOs"""

from typing import Optional

import attrs

from src.service.seat_hold.domain.entity.seat_hold import SeatHold
from src.service.seat_hold.domain.enum.hold_outcome import ConflictResolution


@attrs.frozen
class ResolveResult:
    """Outcome of a hold request after both in-memory and durable checks"""

    resolution: ConflictResolution
    hold: Optional[SeatHold] = None  # Set when ACQUIRED

    @property
    def acquired(self) -> bool:
        return self.resolution == ConflictResolution.ACQUIRED

    @classmethod
    def rejected(cls, resolution: ConflictResolution) -> 'ResolveResult':
        return cls(resolution=resolution)


@attrs.frozen
class ReleaseSummary:
    """Holds removed by clear-all, disconnect, expiry or an admin"""

    released: list[SeatHold] = attrs.field(factory=list)

    @property
    def count(self) -> int:
        return len(self.released)

    def seat_ids(self) -> list[str]:
        return [hold.seat.seat_id for hold in self.released]

    def by_showtime(self) -> dict[int, list[SeatHold]]:
        grouped: dict[int, list[SeatHold]] = {}
        for hold in self.released:
            grouped.setdefault(hold.seat.showtime_id, []).append(hold)
        return grouped

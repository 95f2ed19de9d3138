from typing import Optional

import attrs

from src.service.seat_hold.domain.entity.seat_hold import SeatHold
from src.service.seat_hold.domain.enum.hold_outcome import AcquireStatus, ExtendStatus


@attrs.frozen
class AcquireResult:
    status: AcquireStatus
    hold: Optional[SeatHold] = None  # Winner's hold, or the blocking hold on conflict

    @property
    def acquired(self) -> bool:
        return self.status == AcquireStatus.ACQUIRED


@attrs.frozen
class ExtendResult:
    status: ExtendStatus
    expires_at: Optional[float] = None


@attrs.frozen
class PinResult:
    pinned: list[SeatHold] = attrs.field(factory=list)
    not_held: list[str] = attrs.field(factory=list)
    not_holder: list[str] = attrs.field(factory=list)
    in_progress: list[str] = attrs.field(factory=list)

    @property
    def ok(self) -> bool:
        return not (self.not_held or self.not_holder or self.in_progress)

    @property
    def rejected_seat_ids(self) -> list[str]:
        return [*self.not_held, *self.not_holder, *self.in_progress]

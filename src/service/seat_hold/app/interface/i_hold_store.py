from abc import ABC, abstractmethod
from typing import Optional

from src.service.seat_hold.domain.entity.seat_hold import SeatHold
from src.service.seat_hold.domain.enum.hold_outcome import ReleaseStatus
from src.service.seat_hold.domain.value_object.hold_result import (
    AcquireResult,
    ExtendResult,
    PinResult,
)
from src.service.seat_hold.domain.value_object.seat_key import HolderRef, SeatKey


class IHoldStore(ABC):
    """
    In-process table of seat holds.

    Every method completes without awaiting, so a call is one indivisible
    transition as seen by other tasks on the loop.
    """

    @abstractmethod
    def now(self) -> float:
        pass

    @abstractmethod
    def acquire(self, seat: SeatKey, holder: HolderRef, ttl: float) -> AcquireResult:
        pass

    @abstractmethod
    def release(self, seat: SeatKey, holder: HolderRef) -> ReleaseStatus:
        pass

    @abstractmethod
    def extend(self, seat: SeatKey, holder: HolderRef, extension: float) -> ExtendResult:
        pass

    @abstractmethod
    def release_all(
        self,
        user_id: int,
        *,
        showtime_id: Optional[int] = None,
        connection_id: Optional[str] = None,
    ) -> list[SeatHold]:
        pass

    @abstractmethod
    def rehome(
        self,
        user_id: int,
        *,
        from_connection_id: str,
        to_connection_id: str,
        showtime_id: Optional[int] = None,
    ) -> int:
        pass

    @abstractmethod
    def expire_due(self) -> dict[int, list[SeatHold]]:
        pass

    @abstractmethod
    def get_hold(self, seat: SeatKey) -> Optional[SeatHold]:
        pass

    @abstractmethod
    def holds_for_showtime(self, showtime_id: int) -> list[SeatHold]:
        pass

    @abstractmethod
    def holds_for_user(self, user_id: int, showtime_id: Optional[int] = None) -> list[SeatHold]:
        pass

    @abstractmethod
    def expiring_within(self, seconds: float) -> list[SeatHold]:
        pass

    @abstractmethod
    def is_confirmed(self, seat: SeatKey) -> bool:
        pass

    @abstractmethod
    def confirmed_seat_ids(self, showtime_id: int) -> set[str]:
        pass

    @abstractmethod
    def forget_confirmed(
        self, showtime_id: int, still_booked: set[str], *, read_started_at: float
    ) -> list[str]:
        pass

    @abstractmethod
    def pin(self, showtime_id: int, seat_ids: list[str], holder: HolderRef) -> PinResult:
        pass

    @abstractmethod
    def unpin(self, showtime_id: int, seat_ids: list[str]) -> None:
        pass

    @abstractmethod
    def confirm(self, showtime_id: int, seat_ids: list[str]) -> None:
        pass

    @abstractmethod
    def statistics(self) -> dict:
        pass

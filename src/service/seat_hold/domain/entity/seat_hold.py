import attrs

from src.service.seat_hold.domain.value_object.seat_key import HolderRef, SeatKey


@attrs.define
class SeatHold:
    """
    Transient exclusive claim on a seat.

    Only the hold store creates and mutates these. expires_at stays strictly
    after acquired_at and never moves backwards.
    """

    seat: SeatKey
    holder: HolderRef
    acquired_at: float
    expires_at: float
    extension_count: int = 0
    pinned: bool = False  # Locked while a booking commit is in flight

    def __attrs_post_init__(self) -> None:
        if self.expires_at <= self.acquired_at:
            raise ValueError('expires_at must be after acquired_at')

    @property
    def user_id(self) -> int:
        return self.holder.user_id

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def push_expiry(self, expires_at: float) -> None:
        self.expires_at = max(self.expires_at, expires_at)

    def snapshot(self) -> 'SeatHold':
        """Detached copy for readers outside the store lock"""
        return attrs.evolve(self)

import attrs


@attrs.frozen(order=True)
class SeatKey:
    """Seat identity: one physical seat within one showtime"""

    showtime_id: int
    seat_id: str

    def __str__(self) -> str:
        return f'{self.showtime_id}:{self.seat_id}'


@attrs.frozen
class HolderRef:
    """
    Who holds a seat.

    Ownership is decided by user_id, so several tabs of the same user share
    their holds; connection_id records which connection acquired it last and
    scopes disconnect releases.
    """

    user_id: int
    connection_id: str

    def owns(self, other: 'HolderRef') -> bool:
        return self.user_id == other.user_id

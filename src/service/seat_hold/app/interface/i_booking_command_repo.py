from abc import ABC, abstractmethod

from src.service.seat_hold.domain.entity.booking import Booking


class IBookingCommandRepo(ABC):
    @abstractmethod
    async def create_booking(self, *, booking: Booking) -> Booking:
        """
        Persist the booking and one seat row per seat in a single transaction.

        Raises:
            SeatConflictError: a seat already belongs to an active booking
            PersistenceError: the store is unavailable or the commit failed
        """
        pass

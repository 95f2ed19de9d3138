from abc import ABC, abstractmethod
from typing import Optional


class ISeatInventoryQueryRepo(ABC):
    """Read side of the durable store: seat inventory and confirmed seats"""

    @abstractmethod
    async def list_seat_ids(self, *, showtime_id: int) -> Optional[list[str]]:
        """Seats of the showtime's room in row/column order; None if the showtime is unknown"""
        pass

    @abstractmethod
    async def list_confirmed_seat_ids(self, *, showtime_id: int) -> set[str]:
        pass

    @abstractmethod
    async def find_confirmed_seat_ids(self, *, showtime_id: int, seat_ids: list[str]) -> set[str]:
        """Subset of seat_ids that an active booking already owns"""
        pass

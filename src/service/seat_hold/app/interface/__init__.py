"""Seat Hold Service Interfaces"""

from src.service.seat_hold.app.interface.i_booking_command_repo import IBookingCommandRepo
from src.service.seat_hold.app.interface.i_hold_store import IHoldStore
from src.service.seat_hold.app.interface.i_seat_inventory_query_repo import (
    ISeatInventoryQueryRepo,
)
from src.service.seat_hold.app.interface.i_session_broadcaster import ISessionBroadcaster

__all__ = [
    'IBookingCommandRepo',
    'IHoldStore',
    'ISeatInventoryQueryRepo',
    'ISessionBroadcaster',
]

from enum import StrEnum


class InboundEvent(StrEnum):
    JOIN_SHOWTIME = 'join-showtime'
    SELECT_SEAT = 'select-seat'
    DESELECT_SEAT = 'deselect-seat'
    CLEAR_ALL_SEATS = 'clear-all-seats'
    EXTEND_SEAT_HOLD = 'extend-seat-hold'
    CONFIRM_BOOKING = 'confirm-booking'
    GET_SEATS_STATE = 'get-seats-state'
    GET_SEAT_STATISTICS = 'get-seat-statistics'
    PING = 'ping'


class OutboundEvent(StrEnum):
    CONNECTED = 'connected'
    SEATS_STATE = 'seats-state'
    SEAT_SELECTED = 'seat-selected'
    SEAT_DESELECTED = 'seat-deselected'
    SEAT_CONFLICT = 'seat-conflict'
    SEATS_CLEARED = 'seats-cleared'
    SEAT_HOLD_EXTENDED = 'seat-hold-extended'
    BOOKING_CONFIRMED = 'booking-confirmed'
    SEAT_STATISTICS = 'seat-statistics'
    ERROR = 'error'
    PING = 'ping'
    PONG = 'pong'


def envelope(event: OutboundEvent, data: dict | None = None) -> dict:
    """Wire shape shared by every outbound message"""
    return {'event': event.value, 'data': data or {}}

from enum import StrEnum


class AcquireStatus(StrEnum):
    ACQUIRED = 'acquired'
    HELD_BY_OTHER = 'held_by_other'
    CONFIRMED = 'confirmed'
    LIMIT_REACHED = 'limit_reached'


class ReleaseStatus(StrEnum):
    RELEASED = 'released'
    NOT_HOLDER = 'not_holder'
    NOT_HELD = 'not_held'
    PINNED = 'pinned'  # Being committed by a booking


class ExtendStatus(StrEnum):
    EXTENDED = 'extended'
    NOT_HOLDER = 'not_holder'
    NOT_HELD = 'not_held'
    LIMIT_REACHED = 'limit_reached'


class ConflictResolution(StrEnum):
    ACQUIRED = 'ACQUIRED'
    SEAT_ALREADY_HELD = 'SEAT_ALREADY_HELD'
    SEAT_ALREADY_BOOKED = 'SEAT_ALREADY_BOOKED'
    INVALID_SEAT = 'INVALID_SEAT'


class ReleaseReason(StrEnum):
    DESELECT = 'deselect'
    CLEAR_ALL = 'clear_all'
    DISCONNECT = 'disconnect'
    EXPIRED = 'expired'
    ADMIN = 'admin'

"""Seat Hold Application DTOs"""

from src.service.seat_hold.app.dto.hold_dto import ReleaseSummary, ResolveResult
from src.service.seat_hold.app.dto.seat_snapshot_dto import SeatsSnapshot, SeatView


__all__ = [
    'ReleaseSummary',
    'ResolveResult',
    'SeatsSnapshot',
    'SeatView',
]

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SeatStateResponse(BaseModel):
    seat_id: str
    state: str  # available / held / confirmed
    holder_user_id: Optional[int] = None
    expires_at: Optional[float] = None


class SeatSummary(BaseModel):
    available: int
    held: int
    confirmed: int


class SeatsStateResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'showtime_id': 1,
                'seats': [
                    {'seat_id': 'A1', 'state': 'available'},
                    {
                        'seat_id': 'A2',
                        'state': 'held',
                        'holder_user_id': 7,
                        'expires_at': 1760000000.0,
                    },
                    {'seat_id': 'A3', 'state': 'confirmed'},
                ],
                'summary': {'available': 1, 'held': 1, 'confirmed': 1},
            }
        },
    }

    showtime_id: int
    seats: List[SeatStateResponse]
    summary: SeatSummary


class SeatStatisticsResponse(BaseModel):
    total_held_seats: int
    total_holders: int
    active_showtimes: int
    held_seats_by_showtime: Dict[int, int]
    connected_sessions: int
    pending_releases: int
    showtime_groups: Dict[int, int]
    hold_ttl_seconds: float


class ExpiringSeatResponse(BaseModel):
    showtime_id: int
    seat_id: str
    user_id: int
    expires_at: float
    remaining_seconds: float


class ExpiringSeatsResponse(BaseModel):
    within_seconds: float
    count: int
    seats: List[ExpiringSeatResponse]


class CleanupResponse(BaseModel):
    released_count: int


class ReleaseUserSeatsRequest(BaseModel):
    user_id: int = Field(gt=0)
    showtime_id: Optional[int] = Field(default=None, gt=0)

    model_config = {
        'json_schema_extra': {'examples': [{'user_id': 7}, {'user_id': 7, 'showtime_id': 1}]}
    }


class ReleaseUserSeatsResponse(BaseModel):
    user_id: int
    released_count: int
    released_seats: Dict[int, List[str]]  # showtime_id -> seat ids


class SeatActionRequest(BaseModel):
    showtime_id: int = Field(gt=0)
    seat_id: str

    model_config = {'json_schema_extra': {'example': {'showtime_id': 1, 'seat_id': 'A1'}}}


class SeatSelectedResponse(BaseModel):
    showtime_id: int
    seat_id: str
    user_id: int
    status: str = 'selected'
    expires_at: float


class SeatDeselectedResponse(BaseModel):
    showtime_id: int
    seat_id: str
    status: str = 'available'


class SeatHoldExtendedResponse(BaseModel):
    showtime_id: int
    seat_id: str
    expires_at: float

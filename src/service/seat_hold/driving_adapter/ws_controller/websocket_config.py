"""WebSocket configuration constants"""

from typing import Final


class WebSocketConfig:
    PATH: Final[str] = '/ws/seat-selection'

    # Close codes (4000-4999 are application defined)
    CLOSE_UNAUTHORIZED: Final[int] = 4001
    CLOSE_SLOW_CONSUMER: Final[int] = 4008
    CLOSE_TRY_AGAIN_LATER: Final[int] = 1013


class WebSocketErrorCode:
    INVALID_MESSAGE: Final[str] = 'INVALID_MESSAGE'
    UNKNOWN_EVENT: Final[str] = 'UNKNOWN_EVENT'
    INTERNAL_ERROR: Final[str] = 'INTERNAL_ERROR'

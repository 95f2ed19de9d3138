from typing import Optional


class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    error_code: str = 'INTERNAL_ERROR'

    def __init__(self, message: str, status_code: int, error_code: Optional[str] = None) -> None:
        self.message = message
        self.status_code = status_code
        if error_code:
            self.error_code = error_code
        super().__init__(message)


class DomainError(CustomBaseError):
    error_code = 'DOMAIN_ERROR'

    def __init__(
        self, message: str, status_code: int = 400, error_code: Optional[str] = None
    ) -> None:
        super().__init__(message, status_code, error_code)


class InvalidInputError(DomainError):
    """Malformed showtime or seat identifier, or a seat outside the showtime's inventory"""

    error_code = 'INVALID_INPUT'

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message, 400, error_code)


class ForbiddenError(CustomBaseError):
    error_code = 'FORBIDDEN'

    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotHolderError(CustomBaseError):
    error_code = 'NOT_HOLDER'

    def __init__(self, message: str, seat_ids: Optional[list[str]] = None) -> None:
        self.seat_ids = seat_ids or []
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    error_code = 'NOT_FOUND'

    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    error_code = 'CONFLICT'

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message, 409, error_code)


class SeatConflictError(ConflictError):
    """Seat is taken by someone else: either held right now or already booked"""

    SEAT_ALREADY_HELD = 'SEAT_ALREADY_HELD'
    SEAT_ALREADY_BOOKED = 'SEAT_ALREADY_BOOKED'

    def __init__(self, message: str, *, reason: str, seat_id: Optional[str] = None) -> None:
        self.reason = reason
        self.seat_id = seat_id
        super().__init__(message, reason)


class HoldLimitError(ConflictError):
    error_code = 'HOLD_LIMIT_REACHED'


class ExtensionLimitError(ConflictError):
    error_code = 'EXTENSION_LIMIT_REACHED'


class BookingInProgressError(ConflictError):
    error_code = 'BOOKING_IN_PROGRESS'


class AuthenticationError(CustomBaseError):
    error_code = 'AUTHENTICATION_FAILED'

    def __init__(self, message: str) -> None:
        super().__init__(message, 401)


class PersistenceError(CustomBaseError):
    """Durable store unreachable, or a commit failed"""

    error_code = 'PERSISTENCE_FAILURE'

    def __init__(self, message: str) -> None:
        super().__init__(message, 503)


class ServiceUnavailableError(CustomBaseError):
    error_code = 'SERVICE_UNAVAILABLE'

    def __init__(self, message: str = 'Seat hold service is shutting down') -> None:
        super().__init__(message, 503)

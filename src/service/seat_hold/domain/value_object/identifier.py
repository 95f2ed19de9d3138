"""
Identifier normalization for values arriving from the real-time transport.

Clients send showtime ids as numbers, numeric strings or wrapped in objects,
and seat ids occasionally as leftovers of broken client state. Everything is
reduced to `int` showtime ids and trimmed `str` seat ids here, before any
hold logic runs.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Final

from src.platform.exception.exceptions import InvalidInputError


SHOWTIME_ID_KEYS: Final[tuple[str, ...]] = (
    'showtime_id',
    'showtimeId',
    'showtimeID',
    'Showtime_ID',
    'id',
)
SEAT_ID_KEYS: Final[tuple[str, ...]] = ('seat_id', 'seatId', 'Seat_ID', 'id')

# Values produced by clients concatenating unset row/column fields
MALFORMED_SEAT_MARKERS: Final[frozenset[str]] = frozenset(
    {'undefined', 'undefinedundefined', 'null', 'nan', '[object object]'}
)
MAX_SEAT_ID_LENGTH: Final[int] = 16
_MAX_NESTING: Final[int] = 3


def _unwrap(raw: Any, keys: tuple[str, ...], depth: int = 0) -> Any:
    if not isinstance(raw, Mapping) or depth >= _MAX_NESTING:
        return raw
    for key in keys:
        if key in raw and raw[key] is not None:
            return _unwrap(raw[key], keys, depth + 1)
    if 'data' in raw:
        return _unwrap(raw['data'], keys, depth + 1)
    return raw


def normalize_showtime_id(raw: Any) -> int:
    value = _unwrap(raw, SHOWTIME_ID_KEYS)

    # bool is an int subclass; True must not become showtime 1
    if isinstance(value, bool):
        raise InvalidInputError(f'Invalid showtime id: {raw!r}')

    if isinstance(value, int):
        showtime_id = value
    elif isinstance(value, float) and value.is_integer():
        showtime_id = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        showtime_id = int(value.strip())
    else:
        raise InvalidInputError(f'Invalid showtime id: {raw!r}')

    if showtime_id <= 0:
        raise InvalidInputError(f'Invalid showtime id: {raw!r}')
    return showtime_id


def normalize_seat_id(raw: Any) -> str:
    value = _unwrap(raw, SEAT_ID_KEYS)
    if not isinstance(value, str):
        raise InvalidInputError(f'Invalid seat id: {raw!r}')

    seat_id = value.strip()
    if not seat_id or seat_id.lower() in MALFORMED_SEAT_MARKERS:
        raise InvalidInputError(f'Invalid seat id: {raw!r}')
    if len(seat_id) > MAX_SEAT_ID_LENGTH:
        raise InvalidInputError(f'Seat id too long: {seat_id[:MAX_SEAT_ID_LENGTH]}...')
    return seat_id


def normalize_seat_ids(raw: Any) -> list[str]:
    """Normalize a seat list, dropping duplicates but keeping request order"""
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise InvalidInputError('Seat ids must be a list')

    seat_ids: list[str] = []
    for item in raw:
        seat_id = normalize_seat_id(item)
        if seat_id not in seat_ids:
            seat_ids.append(seat_id)

    if not seat_ids:
        raise InvalidInputError('At least one seat is required')
    return seat_ids


def normalize_total_amount(raw: Any) -> Decimal:
    """Price total is opaque here; it only has to be a finite, non-negative number"""
    if isinstance(raw, bool) or raw is None:
        raise InvalidInputError(f'Invalid total amount: {raw!r}')
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f'Invalid total amount: {raw!r}') from e
    if not amount.is_finite() or amount < 0:
        raise InvalidInputError(f'Invalid total amount: {raw!r}')
    return amount

"""
Seat Hold Message Handler

Dispatches one inbound message to the coordinator. Every error is answered to
the requesting session only, as an `error` event; the connection stays open.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from src.platform.exception.exceptions import CustomBaseError, NotHolderError, SeatConflictError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.seat_hold_coordinator import SeatHoldCoordinator
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.ws_event import InboundEvent, OutboundEvent, envelope
from src.service.seat_hold.driving_adapter.ws_controller.message_codec import MessageCodec
from src.service.seat_hold.driving_adapter.ws_controller.websocket_config import (
    WebSocketErrorCode,
)


Handler = Callable[[Session, Any], Awaitable[Any]]


def _showtime_of(data: Any) -> Any:
    """Bare value, {showtime_id: ...} or any wrapper the identifier normalizer unwraps"""
    if isinstance(data, dict) and 'showtime_id' in data:
        return data['showtime_id']
    return data


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, dict) else None


class SeatHoldMessageHandler:
    def __init__(self, *, coordinator: SeatHoldCoordinator) -> None:
        self.coordinator = coordinator
        self._handlers: dict[str, Handler] = {
            InboundEvent.JOIN_SHOWTIME: self._join_showtime,
            InboundEvent.SELECT_SEAT: self._select_seat,
            InboundEvent.DESELECT_SEAT: self._deselect_seat,
            InboundEvent.CLEAR_ALL_SEATS: self._clear_all_seats,
            InboundEvent.EXTEND_SEAT_HOLD: self._extend_seat_hold,
            InboundEvent.CONFIRM_BOOKING: self._confirm_booking,
            InboundEvent.GET_SEATS_STATE: self._get_seats_state,
            InboundEvent.GET_SEAT_STATISTICS: self._get_seat_statistics,
            InboundEvent.PING: self._ping,
        }

    async def handle_message(self, session: Session, message: dict[str, Any]) -> None:
        event = message.get('event')
        handler = self._handlers.get(event)  # type: ignore[arg-type]
        if handler is None:
            session.deliver(
                envelope(
                    OutboundEvent.ERROR,
                    {
                        'message': f'Unknown event: {event}',
                        'code': WebSocketErrorCode.UNKNOWN_EVENT,
                    },
                )
            )
            return

        data = MessageCodec.normalize_payload(message.get('data'))
        try:
            await handler(session, data)
        except CustomBaseError as e:
            Logger.base.info(
                f'⚠️ [WS] {event} from {session.connection_id} rejected: '
                f'{e.error_code} {e.message}'
            )
            session.deliver(envelope(OutboundEvent.ERROR, self._error_payload(e)))
        except Exception as e:
            Logger.base.exception(
                f'❌ [WS] {event} from {session.connection_id} failed: {type(e).__name__}: {e}'
            )
            session.deliver(
                envelope(
                    OutboundEvent.ERROR,
                    {'message': 'Internal server error', 'code': WebSocketErrorCode.INTERNAL_ERROR},
                )
            )

    @staticmethod
    def _error_payload(error: CustomBaseError) -> dict[str, Any]:
        payload: dict[str, Any] = {'message': error.message, 'code': error.error_code}
        if isinstance(error, SeatConflictError) and error.seat_id:
            payload['seat_id'] = error.seat_id
        if isinstance(error, NotHolderError) and error.seat_ids:
            payload['seat_ids'] = error.seat_ids
        return payload

    # ========== Event handlers ==========

    async def _join_showtime(self, session: Session, data: Any) -> None:
        await self.coordinator.join_showtime(session, _showtime_of(data))

    async def _select_seat(self, session: Session, data: Any) -> None:
        await self.coordinator.select_seat(session, _showtime_of(data), _field(data, 'seat_id'))

    async def _deselect_seat(self, session: Session, data: Any) -> None:
        await self.coordinator.deselect_seat(session, _showtime_of(data), _field(data, 'seat_id'))

    async def _clear_all_seats(self, session: Session, data: Any) -> None:
        await self.coordinator.clear_all_seats(session, _showtime_of(data))

    async def _extend_seat_hold(self, session: Session, data: Any) -> None:
        await self.coordinator.extend_seat_hold(
            session, _showtime_of(data), _field(data, 'seat_id')
        )

    async def _confirm_booking(self, session: Session, data: Any) -> None:
        await self.coordinator.confirm_booking(
            session,
            _showtime_of(data),
            _field(data, 'seat_ids'),
            _field(data, 'total_amount'),
        )

    async def _get_seats_state(self, session: Session, data: Any) -> None:
        await self.coordinator.get_seats_state(session, _showtime_of(data))

    async def _get_seat_statistics(self, session: Session, data: Any) -> None:
        self.coordinator.get_seat_statistics(session)

    async def _ping(self, session: Session, data: Any) -> None:
        session.deliver(
            envelope(OutboundEvent.PONG, {'timestamp': self.coordinator.hold_store.now()})
        )

"""
Seats State Publisher

Turns a fresh snapshot into a `seats-state` message for a whole showtime group
or for one session.
"""

from typing import Optional

from src.platform.exception.exceptions import PersistenceError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.dto import SeatsSnapshot
from src.service.seat_hold.app.interface import ISessionBroadcaster
from src.service.seat_hold.app.query.get_seats_state_use_case import GetSeatsStateUseCase
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.ws_event import OutboundEvent, envelope


class SeatsStatePublisher:
    def __init__(
        self,
        *,
        get_seats_state_use_case: GetSeatsStateUseCase,
        broadcaster: ISessionBroadcaster,
    ) -> None:
        self.get_seats_state_use_case = get_seats_state_use_case
        self.broadcaster = broadcaster

    async def send_to(self, session: Session, *, showtime_id: int) -> SeatsSnapshot:
        """Snapshot for one session; durable-store errors reach the caller"""
        snapshot = await self.get_seats_state_use_case.execute(showtime_id=showtime_id)
        self.broadcaster.send_to(
            session, envelope(OutboundEvent.SEATS_STATE, snapshot.to_payload())
        )
        return snapshot

    async def publish(
        self, *, showtime_id: int, requester: Optional[Session] = None
    ) -> Optional[SeatsSnapshot]:
        """
        Broadcast a snapshot to the showtime group after a hold transition.

        The transition itself already happened, so a durable-store failure here
        is reported to the requester only (if any) instead of being raised.
        """
        try:
            snapshot = await self.get_seats_state_use_case.execute(showtime_id=showtime_id)
        except PersistenceError as e:
            Logger.base.warning(
                f'⚠️ [PUBLISH] Snapshot for showtime {showtime_id} unavailable: {e.message}'
            )
            if requester is not None:
                self.broadcaster.send_to(
                    requester,
                    envelope(OutboundEvent.ERROR, {'message': e.message, 'code': e.error_code}),
                )
            return None

        delivered = self.broadcaster.broadcast(
            showtime_id, envelope(OutboundEvent.SEATS_STATE, snapshot.to_payload())
        )
        Logger.base.debug(
            f'📤 [PUBLISH] seats-state for showtime {showtime_id} -> {delivered} sessions'
        )
        return snapshot

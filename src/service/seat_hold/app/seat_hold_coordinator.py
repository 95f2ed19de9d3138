"""
Seat Hold Coordinator

Entry point for every real-time seat operation. Constructed once by the DI
container and driven through an explicit lifecycle:

- start(): launches the expiration sweeper
- shutdown(): rejects new operations, stops the sweeper and cancels every
  pending disconnect release

Raw identifiers from the transport are normalized here, before anything
reaches the hold store. Errors propagate to the caller (the message handler),
which answers the requesting session only.
"""

from decimal import Decimal
from typing import Any, Optional

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import (
    BookingInProgressError,
    ConflictError,
    ExtensionLimitError,
    InvalidInputError,
    NotHolderError,
    ServiceUnavailableError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.service.seat_hold.app.background.disconnect_reconciler import DisconnectReconciler
from src.service.seat_hold.app.background.expiration_sweeper import ExpirationSweeper
from src.service.seat_hold.app.command.booking_finalizer import BookingFinalizer
from src.service.seat_hold.app.command.conflict_resolver import ConflictResolver
from src.service.seat_hold.app.command.seats_state_publisher import SeatsStatePublisher
from src.service.seat_hold.app.dto import ReleaseSummary, ResolveResult, SeatsSnapshot
from src.service.seat_hold.app.interface import IHoldStore, ISessionBroadcaster
from src.service.seat_hold.app.query.get_seats_state_use_case import GetSeatsStateUseCase
from src.service.seat_hold.domain.entity.booking import Booking
from src.service.seat_hold.domain.entity.seat_hold import SeatHold
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.hold_outcome import (
    ConflictResolution,
    ExtendStatus,
    ReleaseReason,
    ReleaseStatus,
)
from src.service.seat_hold.domain.enum.ws_event import OutboundEvent, envelope
from src.service.seat_hold.domain.value_object.identifier import (
    normalize_seat_id,
    normalize_seat_ids,
    normalize_showtime_id,
    normalize_total_amount,
)
from src.service.seat_hold.domain.value_object.seat_key import SeatKey


CONFLICT_MESSAGES = {
    ConflictResolution.SEAT_ALREADY_HELD: 'Seat is currently selected by another user',
    ConflictResolution.SEAT_ALREADY_BOOKED: 'Seat is already booked',
}


class SeatHoldCoordinator:
    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        broadcaster: ISessionBroadcaster,
        get_seats_state_use_case: GetSeatsStateUseCase,
        publisher: SeatsStatePublisher,
        conflict_resolver: ConflictResolver,
        expiration_sweeper: ExpirationSweeper,
        disconnect_reconciler: DisconnectReconciler,
        booking_finalizer: BookingFinalizer,
        hold_ttl_seconds: float = settings.SEAT_HOLD_TTL_SECONDS,
        hold_extension_seconds: float = settings.SEAT_HOLD_EXTENSION_SECONDS,
    ) -> None:
        self.hold_store = hold_store
        self.broadcaster = broadcaster
        self.get_seats_state_use_case = get_seats_state_use_case
        self.publisher = publisher
        self.conflict_resolver = conflict_resolver
        self.expiration_sweeper = expiration_sweeper
        self.disconnect_reconciler = disconnect_reconciler
        self.booking_finalizer = booking_finalizer
        self.hold_ttl_seconds = hold_ttl_seconds
        self.hold_extension_seconds = hold_extension_seconds
        self._started = False
        self._closed = False

    # ========== Lifecycle ==========

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    async def start(self) -> None:
        if self._closed:
            raise ServiceUnavailableError('Seat hold coordinator cannot be restarted')
        if self._started:
            return
        self.expiration_sweeper.start()
        self._started = True
        Logger.base.info('🚀 [COORDINATOR] Seat hold coordinator started')

    async def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.expiration_sweeper.stop()
        await self.disconnect_reconciler.shutdown()
        Logger.base.info('🛑 [COORDINATOR] Seat hold coordinator stopped')

    def _ensure_open(self) -> None:
        if self._closed:
            raise ServiceUnavailableError()

    # ========== Connections ==========

    def connect(self, session: Session) -> None:
        self._ensure_open()
        self.broadcaster.register(session)
        self.broadcaster.send_to(
            session,
            envelope(
                OutboundEvent.CONNECTED,
                {'connection_id': session.connection_id, 'user_id': session.user_id},
            ),
        )
        Logger.base.info(
            f'🔌 [COORDINATOR] {session.connection_id} connected (user {session.user_id})'
        )

    async def disconnect(self, session: Session) -> None:
        """Leave the group now; release the connection's holds after the grace window"""
        holds_here = [
            hold
            for hold in self.hold_store.holds_for_user(session.user_id)
            if hold.holder.connection_id == session.connection_id
        ]
        if holds_here and not self._closed:
            self.disconnect_reconciler.schedule(session)
        self.broadcaster.unregister(session)
        Logger.base.info(
            f'🔌 [COORDINATOR] {session.connection_id} disconnected '
            f'({len(holds_here)} holds pending release)'
        )

    def _enter_showtime(self, session: Session, showtime_id: int) -> None:
        if session.showtime_id != showtime_id:
            self.broadcaster.join(session, showtime_id)
        self.disconnect_reconciler.cancel_for(
            user_id=session.user_id,
            showtime_id=showtime_id,
            new_connection_id=session.connection_id,
        )

    async def join_showtime(self, session: Session, raw_showtime_id: Any) -> SeatsSnapshot:
        self._ensure_open()
        showtime_id = normalize_showtime_id(raw_showtime_id)

        snapshot = await self.get_seats_state_use_case.execute(showtime_id=showtime_id)
        self._enter_showtime(session, showtime_id)
        self.broadcaster.send_to(
            session, envelope(OutboundEvent.SEATS_STATE, snapshot.to_payload())
        )
        return snapshot

    # ========== Seat operations ==========

    async def select_seat(
        self, session: Session, raw_showtime_id: Any, raw_seat_id: Any
    ) -> ResolveResult:
        self._ensure_open()
        seat = SeatKey(normalize_showtime_id(raw_showtime_id), normalize_seat_id(raw_seat_id))

        result = await self.conflict_resolver.resolve(seat=seat, holder=session.holder)

        if result.resolution == ConflictResolution.INVALID_SEAT:
            raise InvalidInputError(
                f'Seat {seat.seat_id} does not exist in showtime {seat.showtime_id}',
                error_code='INVALID_SEAT',
            )

        # Group membership changes only once the showtime and seat are known to exist
        if session.is_attached:
            self._enter_showtime(session, seat.showtime_id)

        if result.acquired:
            self.broadcaster.broadcast(
                seat.showtime_id,
                envelope(
                    OutboundEvent.SEAT_SELECTED,
                    {
                        'showtime_id': seat.showtime_id,
                        'seat_id': seat.seat_id,
                        'user_id': session.user_id,
                        'status': 'selected',
                        'expires_at': result.hold.expires_at if result.hold else None,
                    },
                ),
            )
            self._refresh_hold_gauge()
            await self.publisher.publish(showtime_id=seat.showtime_id, requester=session)
            return result

        if not session.is_attached:
            return result

        self.broadcaster.send_to(
            session,
            envelope(
                OutboundEvent.SEAT_CONFLICT,
                {
                    'showtime_id': seat.showtime_id,
                    'seat_id': seat.seat_id,
                    'reason': result.resolution.value,
                    'message': CONFLICT_MESSAGES[result.resolution],
                },
            ),
        )
        await self.publisher.send_to(session, showtime_id=seat.showtime_id)
        return result

    async def deselect_seat(self, session: Session, raw_showtime_id: Any, raw_seat_id: Any) -> None:
        self._ensure_open()
        seat = SeatKey(normalize_showtime_id(raw_showtime_id), normalize_seat_id(raw_seat_id))

        status = self.hold_store.release(seat, session.holder)
        match status:
            case ReleaseStatus.NOT_HOLDER:
                raise NotHolderError(f'Seat {seat.seat_id} is held by another user', [seat.seat_id])
            case ReleaseStatus.NOT_HELD:
                raise ConflictError(f'Seat {seat.seat_id} is not held', error_code='NOT_HELD')
            case ReleaseStatus.PINNED:
                raise BookingInProgressError(f'Seat {seat.seat_id} is being booked')

        metrics.record_released(showtime_id=seat.showtime_id, reason=ReleaseReason.DESELECT.value)
        self.broadcaster.broadcast(
            seat.showtime_id,
            envelope(
                OutboundEvent.SEAT_DESELECTED,
                {
                    'showtime_id': seat.showtime_id,
                    'seat_id': seat.seat_id,
                    'user_id': session.user_id,
                    'status': 'available',
                },
            ),
        )
        self._refresh_hold_gauge()
        await self.publisher.publish(showtime_id=seat.showtime_id, requester=session)

    async def clear_all_seats(self, session: Session, raw_showtime_id: Any) -> ReleaseSummary:
        self._ensure_open()
        showtime_id = normalize_showtime_id(raw_showtime_id)

        summary = ReleaseSummary(
            released=self.hold_store.release_all(session.user_id, showtime_id=showtime_id)
        )
        self.broadcaster.send_to(
            session,
            envelope(
                OutboundEvent.SEATS_CLEARED,
                {
                    'showtime_id': showtime_id,
                    'released_seat_ids': summary.seat_ids(),
                    'count': summary.count,
                },
            ),
        )
        if summary.count:
            metrics.record_released(
                showtime_id=showtime_id, reason=ReleaseReason.CLEAR_ALL.value, count=summary.count
            )
            self._refresh_hold_gauge()
            await self.publisher.publish(showtime_id=showtime_id, requester=session)
        return summary

    async def extend_seat_hold(
        self, session: Session, raw_showtime_id: Any, raw_seat_id: Any
    ) -> float:
        self._ensure_open()
        seat = SeatKey(normalize_showtime_id(raw_showtime_id), normalize_seat_id(raw_seat_id))

        result = self.hold_store.extend(seat, session.holder, self.hold_extension_seconds)
        match result.status:
            case ExtendStatus.NOT_HOLDER:
                raise NotHolderError(f'Seat {seat.seat_id} is held by another user', [seat.seat_id])
            case ExtendStatus.NOT_HELD:
                raise ConflictError(f'Seat {seat.seat_id} is not held', error_code='NOT_HELD')
            case ExtendStatus.LIMIT_REACHED:
                raise ExtensionLimitError(f'Hold on seat {seat.seat_id} cannot be extended again')

        self.broadcaster.send_to(
            session,
            envelope(
                OutboundEvent.SEAT_HOLD_EXTENDED,
                {
                    'showtime_id': seat.showtime_id,
                    'seat_id': seat.seat_id,
                    'expires_at': result.expires_at,
                },
            ),
        )
        return result.expires_at

    async def confirm_booking(
        self,
        session: Session,
        raw_showtime_id: Any,
        raw_seat_ids: Any,
        raw_total_amount: Any,
    ) -> Booking:
        self._ensure_open()
        showtime_id = normalize_showtime_id(raw_showtime_id)
        seat_ids = normalize_seat_ids(raw_seat_ids)
        total_amount: Decimal = normalize_total_amount(raw_total_amount)

        booking = await self.booking_finalizer.finalize(
            showtime_id=showtime_id,
            seat_ids=seat_ids,
            holder=session.holder,
            total_amount=total_amount,
        )
        self._refresh_hold_gauge()

        await self.publisher.publish(showtime_id=showtime_id, requester=session)
        self.broadcaster.send_to(
            session,
            envelope(
                OutboundEvent.BOOKING_CONFIRMED,
                {
                    'booking_id': str(booking.id),
                    'showtime_id': showtime_id,
                    'seat_ids': booking.seat_ids,
                    'total_amount': str(booking.total_amount),
                    'message': 'Booking confirmed',
                },
            ),
        )
        return booking

    async def get_seats_state(self, session: Session, raw_showtime_id: Any) -> SeatsSnapshot:
        self._ensure_open()
        return await self.publisher.send_to(
            session, showtime_id=normalize_showtime_id(raw_showtime_id)
        )

    def get_seat_statistics(self, session: Session) -> dict:
        self._ensure_open()
        stats = self.statistics()
        self.broadcaster.send_to(session, envelope(OutboundEvent.SEAT_STATISTICS, stats))
        return stats

    # ========== Read-only / administrative ==========

    def statistics(self) -> dict:
        stats = self.hold_store.statistics()
        return {
            'total_held_seats': stats['total_held_seats'],
            'total_holders': stats['total_holders'],
            'active_showtimes': stats['active_showtimes'],
            'held_seats_by_showtime': stats['held_seats_by_showtime'],
            'connected_sessions': self.broadcaster.session_count,
            'pending_releases': self.disconnect_reconciler.pending_count,
            'showtime_groups': self.broadcaster.group_sizes(),
            'hold_ttl_seconds': self.hold_ttl_seconds,
        }

    async def snapshot(self, raw_showtime_id: Any) -> SeatsSnapshot:
        self._ensure_open()
        return await self.get_seats_state_use_case.execute(
            showtime_id=normalize_showtime_id(raw_showtime_id)
        )

    def expiring_seats(
        self, within_seconds: float = settings.EXPIRING_SOON_WINDOW_SECONDS
    ) -> list[SeatHold]:
        if within_seconds <= 0:
            raise InvalidInputError('within_seconds must be positive')
        return self.hold_store.expiring_within(within_seconds)

    async def cleanup(self) -> int:
        self._ensure_open()
        return await self.expiration_sweeper.sweep_once()

    async def release_user_seats(
        self, user_id: int, raw_showtime_id: Optional[Any] = None
    ) -> ReleaseSummary:
        self._ensure_open()
        showtime_id = (
            normalize_showtime_id(raw_showtime_id) if raw_showtime_id is not None else None
        )

        summary = ReleaseSummary(
            released=self.hold_store.release_all(user_id, showtime_id=showtime_id)
        )
        if not summary.count:
            return summary

        by_showtime = summary.by_showtime()
        for released_showtime_id, holds in by_showtime.items():
            metrics.record_released(
                showtime_id=released_showtime_id,
                reason=ReleaseReason.ADMIN.value,
                count=len(holds),
            )
            for session in self.broadcaster.sessions_for_user(user_id):
                self.broadcaster.send_to(
                    session,
                    envelope(
                        OutboundEvent.SEATS_CLEARED,
                        {
                            'showtime_id': released_showtime_id,
                            'released_seat_ids': [hold.seat.seat_id for hold in holds],
                            'count': len(holds),
                        },
                    ),
                )
        Logger.base.info(
            f'🧹 [COORDINATOR] Admin released {summary.seat_ids()} of user {user_id}'
        )

        self._refresh_hold_gauge()
        for released_showtime_id in by_showtime:
            await self.publisher.publish(showtime_id=released_showtime_id)
        return summary

    def _refresh_hold_gauge(self) -> None:
        metrics.active_holds.set(self.hold_store.statistics()['total_held_seats'])

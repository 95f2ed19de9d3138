"""
Conflict Resolver

Gatekeeper in front of every hold acquisition.

Order of checks:
1. Locally confirmed seats (booked through this process)
2. In-memory hold by another user
3. Seat inventory and confirmed bookings in the durable store, only when the
   seat is not held in memory
4. Atomic acquire in the hold store (the durable read awaited, so another task
   may have taken the seat meanwhile; the store's compare-and-set decides)

Across processes the durable check and the acquire are not atomic. Running
several instances needs a shared compare-and-set store in place of HoldStore.
"""

from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import HoldLimitError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.service.seat_hold.app.dto import ResolveResult
from src.service.seat_hold.app.interface import IHoldStore, ISeatInventoryQueryRepo
from src.service.seat_hold.domain.enum.hold_outcome import AcquireStatus, ConflictResolution
from src.service.seat_hold.domain.value_object.seat_key import HolderRef, SeatKey


class ConflictResolver:
    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        seat_inventory_repo: ISeatInventoryQueryRepo,
        hold_ttl_seconds: float = settings.SEAT_HOLD_TTL_SECONDS,
    ) -> None:
        self.hold_store = hold_store
        self.seat_inventory_repo = seat_inventory_repo
        self.hold_ttl_seconds = hold_ttl_seconds
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def resolve(self, *, seat: SeatKey, holder: HolderRef) -> ResolveResult:
        with self.tracer.start_as_current_span(
            'conflict_resolver.resolve',
            attributes={'showtime.id': seat.showtime_id, 'seat.id': seat.seat_id},
        ) as span:
            result = await self._resolve(seat=seat, holder=holder)
            span.set_attribute('resolution', result.resolution.value)
            metrics.record_hold_request(
                showtime_id=seat.showtime_id, result=result.resolution.value.lower()
            )
            return result

    async def _resolve(self, *, seat: SeatKey, holder: HolderRef) -> ResolveResult:
        if self.hold_store.is_confirmed(seat):
            return ResolveResult.rejected(ConflictResolution.SEAT_ALREADY_BOOKED)

        current = self.hold_store.get_hold(seat)
        if current is not None and not current.holder.owns(holder):
            return ResolveResult.rejected(ConflictResolution.SEAT_ALREADY_HELD)

        if current is None:
            seat_ids = await self.seat_inventory_repo.list_seat_ids(showtime_id=seat.showtime_id)
            if not seat_ids or seat.seat_id not in seat_ids:
                return ResolveResult.rejected(ConflictResolution.INVALID_SEAT)

            booked = await self.seat_inventory_repo.find_confirmed_seat_ids(
                showtime_id=seat.showtime_id, seat_ids=[seat.seat_id]
            )
            if seat.seat_id in booked:
                Logger.base.info(f'📕 [RESOLVER] {seat} already booked in durable store')
                return ResolveResult.rejected(ConflictResolution.SEAT_ALREADY_BOOKED)

        result = self.hold_store.acquire(seat, holder, self.hold_ttl_seconds)
        match result.status:
            case AcquireStatus.ACQUIRED:
                return ResolveResult(resolution=ConflictResolution.ACQUIRED, hold=result.hold)
            case AcquireStatus.HELD_BY_OTHER:
                return ResolveResult.rejected(ConflictResolution.SEAT_ALREADY_HELD)
            case AcquireStatus.CONFIRMED:
                return ResolveResult.rejected(ConflictResolution.SEAT_ALREADY_BOOKED)
            case AcquireStatus.LIMIT_REACHED:
                raise HoldLimitError(
                    f'At most {settings.MAX_HOLDS_PER_SESSION} seats can be held per showtime'
                )

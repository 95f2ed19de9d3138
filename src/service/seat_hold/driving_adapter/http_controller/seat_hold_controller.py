from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import SeatConflictError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.seat_hold_coordinator import CONFLICT_MESSAGES, SeatHoldCoordinator
from src.service.seat_hold.domain.entity.authenticated_user import AuthenticatedUser
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.value_object.identifier import normalize_seat_id
from src.service.seat_hold.driving_adapter.http_controller.auth.role_auth import (
    get_current_user,
    require_admin,
    require_admin_or_manager,
)
from src.service.seat_hold.driving_adapter.http_controller.schema.seat_hold_schema import (
    CleanupResponse,
    ExpiringSeatResponse,
    ExpiringSeatsResponse,
    ReleaseUserSeatsRequest,
    ReleaseUserSeatsResponse,
    SeatActionRequest,
    SeatDeselectedResponse,
    SeatHoldExtendedResponse,
    SeatSelectedResponse,
    SeatsStateResponse,
    SeatStatisticsResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get('/showtime/{showtime_id}/seats')
@Logger.io
@inject
async def get_showtime_seats(
    showtime_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> SeatsStateResponse:
    snapshot = await coordinator.snapshot(showtime_id)
    return SeatsStateResponse(**snapshot.to_payload())


@router.post('/select')
@Logger.io
@inject
async def select_seat(
    request: SeatActionRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> SeatSelectedResponse:
    seat_id = normalize_seat_id(request.seat_id)
    result = await coordinator.select_seat(
        Session.detached(user_id=current_user.id, role=current_user.role.value),
        request.showtime_id,
        seat_id,
    )
    if not result.acquired or result.hold is None:
        raise SeatConflictError(
            CONFLICT_MESSAGES[result.resolution], reason=result.resolution.value, seat_id=seat_id
        )
    return SeatSelectedResponse(
        showtime_id=request.showtime_id,
        seat_id=seat_id,
        user_id=current_user.id,
        expires_at=result.hold.expires_at,
    )


@router.post('/deselect')
@Logger.io
@inject
async def deselect_seat(
    request: SeatActionRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> SeatDeselectedResponse:
    seat_id = normalize_seat_id(request.seat_id)
    await coordinator.deselect_seat(
        Session.detached(user_id=current_user.id, role=current_user.role.value),
        request.showtime_id,
        seat_id,
    )
    return SeatDeselectedResponse(showtime_id=request.showtime_id, seat_id=seat_id)


@router.post('/extend-hold')
@Logger.io
@inject
async def extend_seat_hold(
    request: SeatActionRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> SeatHoldExtendedResponse:
    seat_id = normalize_seat_id(request.seat_id)
    expires_at = await coordinator.extend_seat_hold(
        Session.detached(user_id=current_user.id, role=current_user.role.value),
        request.showtime_id,
        seat_id,
    )
    return SeatHoldExtendedResponse(
        showtime_id=request.showtime_id, seat_id=seat_id, expires_at=expires_at
    )


@router.get('/statistics')
@Logger.io
@inject
async def get_statistics(
    current_user: AuthenticatedUser = Depends(require_admin_or_manager),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> SeatStatisticsResponse:
    return SeatStatisticsResponse(**coordinator.statistics())


@router.get('/expiring-seats')
@Logger.io
@inject
async def get_expiring_seats(
    within_seconds: float = Query(default=settings.EXPIRING_SOON_WINDOW_SECONDS, gt=0),
    current_user: AuthenticatedUser = Depends(require_admin),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> ExpiringSeatsResponse:
    now = coordinator.hold_store.now()
    holds = coordinator.expiring_seats(within_seconds)
    return ExpiringSeatsResponse(
        within_seconds=within_seconds,
        count=len(holds),
        seats=[
            ExpiringSeatResponse(
                showtime_id=hold.seat.showtime_id,
                seat_id=hold.seat.seat_id,
                user_id=hold.user_id,
                expires_at=hold.expires_at,
                remaining_seconds=round(hold.expires_at - now, 3),
            )
            for hold in holds
        ],
    )


@router.post('/cleanup')
@Logger.io
@inject
async def cleanup_expired_seats(
    current_user: AuthenticatedUser = Depends(require_admin),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> CleanupResponse:
    released = await coordinator.cleanup()
    return CleanupResponse(released_count=released)


@router.post('/release-user-seats')
@Logger.io
@inject
async def release_user_seats(
    request: ReleaseUserSeatsRequest,
    current_user: AuthenticatedUser = Depends(require_admin),
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
) -> ReleaseUserSeatsResponse:
    with tracer.start_as_current_span('controller.release_user_seats') as span:
        span.set_attribute('admin.id', current_user.id)
        span.set_attribute('target.user_id', request.user_id)

        summary = await coordinator.release_user_seats(request.user_id, request.showtime_id)
        return ReleaseUserSeatsResponse(
            user_id=request.user_id,
            released_count=summary.count,
            released_seats={
                showtime_id: [hold.seat.seat_id for hold in holds]
                for showtime_id, holds in summary.by_showtime().items()
            },
        )

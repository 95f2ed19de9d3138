"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.service.seat_hold.app.background.disconnect_reconciler import DisconnectReconciler
from src.service.seat_hold.app.background.expiration_sweeper import ExpirationSweeper
from src.service.seat_hold.app.command.booking_finalizer import BookingFinalizer
from src.service.seat_hold.app.command.conflict_resolver import ConflictResolver
from src.service.seat_hold.app.command.seats_state_publisher import SeatsStatePublisher
from src.service.seat_hold.app.query.get_seats_state_use_case import GetSeatsStateUseCase
from src.service.seat_hold.app.seat_hold_coordinator import SeatHoldCoordinator
from src.service.seat_hold.driven_adapter.broadcaster.session_registry import SessionRegistry
from src.service.seat_hold.driven_adapter.repo.booking_command_repo_impl import (
    BookingCommandRepoImpl,
)
from src.service.seat_hold.driven_adapter.repo.seat_inventory_query_repo_impl import (
    SeatInventoryQueryRepoImpl,
)
from src.service.seat_hold.driven_adapter.state.hold_store import HoldStore
from src.service.seat_hold.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (durable store; repositories open one session per call)
    database = providers.Singleton(Database)

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)

    # In-process state (one instance per process)
    hold_store = providers.Singleton(
        HoldStore,
        max_holds_per_user=config_service.provided.MAX_HOLDS_PER_SESSION,
        max_extensions=config_service.provided.SEAT_HOLD_MAX_EXTENSIONS,
    )
    session_registry = providers.Singleton(SessionRegistry)

    # Repositories (stateless - use session_factory per call)
    seat_inventory_query_repo = providers.Singleton(
        SeatInventoryQueryRepoImpl,
        session_factory=database.provided.session,
        ttl_seconds=config_service.provided.SEAT_INVENTORY_CACHE_TTL_SECONDS,
    )
    booking_command_repo = providers.Singleton(
        BookingCommandRepoImpl, session_factory=database.provided.session
    )

    # Seat hold use cases
    get_seats_state_use_case = providers.Singleton(
        GetSeatsStateUseCase,
        hold_store=hold_store,
        seat_inventory_repo=seat_inventory_query_repo,
    )
    seats_state_publisher = providers.Singleton(
        SeatsStatePublisher,
        get_seats_state_use_case=get_seats_state_use_case,
        broadcaster=session_registry,
    )
    conflict_resolver = providers.Singleton(
        ConflictResolver,
        hold_store=hold_store,
        seat_inventory_repo=seat_inventory_query_repo,
        hold_ttl_seconds=config_service.provided.SEAT_HOLD_TTL_SECONDS,
    )
    booking_finalizer = providers.Singleton(
        BookingFinalizer,
        hold_store=hold_store,
        booking_command_repo=booking_command_repo,
    )

    # Background work
    expiration_sweeper = providers.Singleton(
        ExpirationSweeper,
        hold_store=hold_store,
        publisher=seats_state_publisher,
        interval_seconds=config_service.provided.SWEEP_INTERVAL_SECONDS,
    )
    disconnect_reconciler = providers.Singleton(
        DisconnectReconciler,
        hold_store=hold_store,
        publisher=seats_state_publisher,
        grace_seconds=config_service.provided.DISCONNECT_GRACE_SECONDS,
    )

    # Coordinator (started/stopped by the app lifespan)
    seat_hold_coordinator = providers.Singleton(
        SeatHoldCoordinator,
        hold_store=hold_store,
        broadcaster=session_registry,
        get_seats_state_use_case=get_seats_state_use_case,
        publisher=seats_state_publisher,
        conflict_resolver=conflict_resolver,
        expiration_sweeper=expiration_sweeper,
        disconnect_reconciler=disconnect_reconciler,
        booking_finalizer=booking_finalizer,
        hold_ttl_seconds=config_service.provided.SEAT_HOLD_TTL_SECONDS,
        hold_extension_seconds=config_service.provided.SEAT_HOLD_EXTENSION_SECONDS,
    )


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()

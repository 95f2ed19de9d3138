from opentelemetry import trace

from src.platform.exception.exceptions import InvalidInputError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.dto import SeatsSnapshot, SeatView
from src.service.seat_hold.app.interface import IHoldStore, ISeatInventoryQueryRepo
from src.service.seat_hold.domain.enum.seat_state import SeatState


class GetSeatsStateUseCase:
    """
    Build the full seat map of a showtime.

    Flow:
    1. Load seat inventory and confirmed seats from the durable store (awaits)
    2. Forget local confirmations committed before that read which it no longer
       lists (booking cancelled elsewhere)
    3. Read holds and locally confirmed seats from the hold store (no awaits)
    4. Merge: CONFIRMED > HELD > AVAILABLE

    Step 3 happens after all I/O, so a snapshot reflects the hold table at the
    moment it is handed to the broadcaster. Durable-store errors propagate;
    they are never turned into an all-available map.
    """

    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        seat_inventory_repo: ISeatInventoryQueryRepo,
    ) -> None:
        self.hold_store = hold_store
        self.seat_inventory_repo = seat_inventory_repo
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, showtime_id: int) -> SeatsSnapshot:
        with self.tracer.start_as_current_span(
            'use_case.get_seats_state', attributes={'showtime.id': showtime_id}
        ):
            seat_ids = await self.seat_inventory_repo.list_seat_ids(showtime_id=showtime_id)
            if seat_ids is None:
                raise InvalidInputError(
                    f'Showtime {showtime_id} does not exist', error_code='INVALID_SHOWTIME'
                )
            read_started_at = self.hold_store.now()
            db_confirmed = await self.seat_inventory_repo.list_confirmed_seat_ids(
                showtime_id=showtime_id
            )
            self.hold_store.forget_confirmed(
                showtime_id, set(db_confirmed), read_started_at=read_started_at
            )

            confirmed = set(db_confirmed) | self.hold_store.confirmed_seat_ids(showtime_id)
            holds = {
                hold.seat.seat_id: hold
                for hold in self.hold_store.holds_for_showtime(showtime_id)
            }

            seats: list[SeatView] = []
            for seat_id in seat_ids:
                if seat_id in confirmed:
                    seats.append(SeatView(seat_id=seat_id, state=SeatState.CONFIRMED))
                elif (hold := holds.get(seat_id)) is not None:
                    seats.append(
                        SeatView(
                            seat_id=seat_id,
                            state=SeatState.HELD,
                            holder_user_id=hold.user_id,
                            expires_at=hold.expires_at,
                        )
                    )
                else:
                    seats.append(SeatView(seat_id=seat_id, state=SeatState.AVAILABLE))

            return SeatsSnapshot(showtime_id=showtime_id, seats=tuple(seats))

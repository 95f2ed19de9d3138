"""
In-memory Hold Store

Single source of truth for transient seat holds of every showtime served by
this process.

Concurrency:
- Each public method runs to completion without awaiting, so on the event loop
  it is one atomic transition (compare-and-set on the seat key).
- A re-entrant lock additionally serializes callers from other threads
  (portal threads, tests driving the store from a thread pool).
- expire_due() re-checks each hold under the lock at removal time, so an
  extend that lands first always wins.

Confirmed seats are remembered for a short retention window after a local
commit. That covers snapshots whose durable read started before the commit.
A durable read that started after the commit and no longer lists the seat
drops it at once (forget_confirmed), so a booking cancelled elsewhere frees
the seat on the next snapshot instead of at the end of the window.
"""

from collections.abc import Callable
import threading
import time
from typing import Optional

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.interface.i_hold_store import IHoldStore
from src.service.seat_hold.domain.entity.seat_hold import SeatHold
from src.service.seat_hold.domain.enum.hold_outcome import (
    AcquireStatus,
    ExtendStatus,
    ReleaseStatus,
)
from src.service.seat_hold.domain.value_object.hold_result import (
    AcquireResult,
    ExtendResult,
    PinResult,
)
from src.service.seat_hold.domain.value_object.seat_key import HolderRef, SeatKey


CONFIRMED_RETENTION_SECONDS = 30.0


class HoldStore(IHoldStore):
    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        max_holds_per_user: int = settings.MAX_HOLDS_PER_SESSION,
        max_extensions: int = settings.SEAT_HOLD_MAX_EXTENSIONS,
        confirmed_retention: float = CONFIRMED_RETENTION_SECONDS,
    ) -> None:
        self._clock = clock
        self._max_holds_per_user = max_holds_per_user
        self._max_extensions = max_extensions
        self._confirmed_retention = confirmed_retention

        self._lock = threading.RLock()
        self._holds: dict[SeatKey, SeatHold] = {}
        self._by_showtime: dict[int, set[SeatKey]] = {}
        self._confirmed: dict[SeatKey, float] = {}  # seat -> confirmed_at

    def now(self) -> float:
        return self._clock()

    # ========== Internal helpers (caller holds the lock) ==========

    def _insert(self, hold: SeatHold) -> None:
        self._holds[hold.seat] = hold
        self._by_showtime.setdefault(hold.seat.showtime_id, set()).add(hold.seat)

    def _remove(self, seat: SeatKey) -> Optional[SeatHold]:
        hold = self._holds.pop(seat, None)
        if hold is None:
            return None
        keys = self._by_showtime.get(seat.showtime_id)
        if keys is not None:
            keys.discard(seat)
            if not keys:
                del self._by_showtime[seat.showtime_id]
        return hold

    def _live_hold(self, seat: SeatKey, now: float) -> Optional[SeatHold]:
        """Current hold, treating an unswept expired one as absent (pinned ones stay)"""
        hold = self._holds.get(seat)
        if hold is None or (hold.is_expired(now) and not hold.pinned):
            return None
        return hold

    def _is_confirmed(self, seat: SeatKey, now: float) -> bool:
        confirmed_at = self._confirmed.get(seat)
        if confirmed_at is None:
            return False
        if now - confirmed_at >= self._confirmed_retention:
            del self._confirmed[seat]
            return False
        return True

    def _user_hold_count(self, user_id: int, showtime_id: int, now: float) -> int:
        return sum(
            1
            for key in self._by_showtime.get(showtime_id, ())
            if (hold := self._live_hold(key, now)) is not None and hold.user_id == user_id
        )

    # ========== Transitions ==========

    def acquire(self, seat: SeatKey, holder: HolderRef, ttl: float) -> AcquireResult:
        if ttl <= 0:
            raise ValueError('ttl must be positive')

        with self._lock:
            now = self._clock()
            if self._is_confirmed(seat, now):
                return AcquireResult(status=AcquireStatus.CONFIRMED)

            current = self._live_hold(seat, now)
            if current is not None:
                if not current.holder.owns(holder):
                    return AcquireResult(
                        status=AcquireStatus.HELD_BY_OTHER, hold=current.snapshot()
                    )
                # Same user again (other tab or reconnect): keep the seat, adopt the connection
                current.holder = holder
                current.push_expiry(now + ttl)
                return AcquireResult(status=AcquireStatus.ACQUIRED, hold=current.snapshot())

            if self._user_hold_count(holder.user_id, seat.showtime_id, now) >= (
                self._max_holds_per_user
            ):
                return AcquireResult(status=AcquireStatus.LIMIT_REACHED)

            self._remove(seat)  # expired leftover, if any
            hold = SeatHold(seat=seat, holder=holder, acquired_at=now, expires_at=now + ttl)
            self._insert(hold)
            return AcquireResult(status=AcquireStatus.ACQUIRED, hold=hold.snapshot())

    def release(self, seat: SeatKey, holder: HolderRef) -> ReleaseStatus:
        with self._lock:
            current = self._live_hold(seat, self._clock())
            if current is None:
                return ReleaseStatus.NOT_HELD
            if not current.holder.owns(holder):
                return ReleaseStatus.NOT_HOLDER
            if current.pinned:
                return ReleaseStatus.PINNED
            self._remove(seat)
            return ReleaseStatus.RELEASED

    def extend(self, seat: SeatKey, holder: HolderRef, extension: float) -> ExtendResult:
        if extension <= 0:
            raise ValueError('extension must be positive')

        with self._lock:
            current = self._live_hold(seat, self._clock())
            if current is None:
                return ExtendResult(status=ExtendStatus.NOT_HELD)
            if not current.holder.owns(holder):
                return ExtendResult(status=ExtendStatus.NOT_HOLDER)
            if current.extension_count >= self._max_extensions:
                return ExtendResult(
                    status=ExtendStatus.LIMIT_REACHED, expires_at=current.expires_at
                )

            current.push_expiry(current.expires_at + extension)
            current.extension_count += 1
            return ExtendResult(status=ExtendStatus.EXTENDED, expires_at=current.expires_at)

    def release_all(
        self,
        user_id: int,
        *,
        showtime_id: Optional[int] = None,
        connection_id: Optional[str] = None,
    ) -> list[SeatHold]:
        with self._lock:
            targets = [
                hold
                for hold in self._holds.values()
                if hold.user_id == user_id
                and not hold.pinned
                and (showtime_id is None or hold.seat.showtime_id == showtime_id)
                and (connection_id is None or hold.holder.connection_id == connection_id)
            ]
            for hold in targets:
                self._remove(hold.seat)
            return targets

    def rehome(
        self,
        user_id: int,
        *,
        from_connection_id: str,
        to_connection_id: str,
        showtime_id: Optional[int] = None,
    ) -> int:
        with self._lock:
            moved = 0
            for hold in self._holds.values():
                if showtime_id is not None and hold.seat.showtime_id != showtime_id:
                    continue
                if hold.user_id == user_id and hold.holder.connection_id == from_connection_id:
                    hold.holder = HolderRef(user_id=user_id, connection_id=to_connection_id)
                    moved += 1
            return moved

    def expire_due(self) -> dict[int, list[SeatHold]]:
        if not self._holds:
            return {}

        with self._lock:
            candidates = [key for keys in self._by_showtime.values() for key in keys]

        expired: dict[int, list[SeatHold]] = {}
        for key in candidates:
            with self._lock:
                # Re-validate now; a concurrent extend may have moved the deadline
                hold = self._holds.get(key)
                if hold is None or hold.pinned or not hold.is_expired(self._clock()):
                    continue
                self._remove(key)
            expired.setdefault(key.showtime_id, []).append(hold)

        if expired:
            self._purge_confirmed()
        return expired

    def _purge_confirmed(self) -> None:
        with self._lock:
            now = self._clock()
            stale = [
                seat
                for seat, confirmed_at in self._confirmed.items()
                if now - confirmed_at >= self._confirmed_retention
            ]
            for seat in stale:
                del self._confirmed[seat]

    # ========== Booking commit support ==========

    def pin(self, showtime_id: int, seat_ids: list[str], holder: HolderRef) -> PinResult:
        with self._lock:
            now = self._clock()
            holds: list[SeatHold] = []
            not_held: list[str] = []
            not_holder: list[str] = []
            in_progress: list[str] = []

            for seat_id in seat_ids:
                hold = self._live_hold(SeatKey(showtime_id, seat_id), now)
                if hold is None or hold.is_expired(now):
                    not_held.append(seat_id)
                elif not hold.holder.owns(holder):
                    not_holder.append(seat_id)
                elif hold.pinned:
                    in_progress.append(seat_id)
                else:
                    holds.append(hold)

            if not_held or not_holder or in_progress:
                return PinResult(not_held=not_held, not_holder=not_holder, in_progress=in_progress)

            for hold in holds:
                hold.pinned = True
            return PinResult(pinned=[hold.snapshot() for hold in holds])

    def unpin(self, showtime_id: int, seat_ids: list[str]) -> None:
        with self._lock:
            for seat_id in seat_ids:
                hold = self._holds.get(SeatKey(showtime_id, seat_id))
                if hold is not None:
                    hold.pinned = False

    def confirm(self, showtime_id: int, seat_ids: list[str]) -> None:
        with self._lock:
            now = self._clock()
            for seat_id in seat_ids:
                seat = SeatKey(showtime_id, seat_id)
                self._remove(seat)
                self._confirmed[seat] = now
        Logger.base.debug(f'🔒 [HOLD] Confirmed {len(seat_ids)} seats for showtime {showtime_id}')

    def forget_confirmed(
        self, showtime_id: int, still_booked: set[str], *, read_started_at: float
    ) -> list[str]:
        """Drop seats committed before a durable read that no longer lists them"""
        with self._lock:
            stale = [
                seat
                for seat, confirmed_at in self._confirmed.items()
                if seat.showtime_id == showtime_id
                and confirmed_at < read_started_at
                and seat.seat_id not in still_booked
            ]
            for seat in stale:
                del self._confirmed[seat]
        if stale:
            Logger.base.info(
                f'🔓 [HOLD] Showtime {showtime_id}: {len(stale)} confirmed seats no longer booked'
            )
        return [seat.seat_id for seat in stale]

    # ========== Reads ==========

    def get_hold(self, seat: SeatKey) -> Optional[SeatHold]:
        with self._lock:
            hold = self._live_hold(seat, self._clock())
            return hold.snapshot() if hold else None

    def holds_for_showtime(self, showtime_id: int) -> list[SeatHold]:
        with self._lock:
            now = self._clock()
            holds = (self._live_hold(key, now) for key in self._by_showtime.get(showtime_id, ()))
            return sorted(
                (hold.snapshot() for hold in holds if hold is not None),
                key=lambda hold: hold.seat,
            )

    def holds_for_user(self, user_id: int, showtime_id: Optional[int] = None) -> list[SeatHold]:
        with self._lock:
            now = self._clock()
            return sorted(
                (
                    hold.snapshot()
                    for hold in self._holds.values()
                    if hold.user_id == user_id
                    and (showtime_id is None or hold.seat.showtime_id == showtime_id)
                    and self._live_hold(hold.seat, now) is not None
                ),
                key=lambda hold: hold.seat,
            )

    def expiring_within(self, seconds: float) -> list[SeatHold]:
        with self._lock:
            now = self._clock()
            return sorted(
                (
                    hold.snapshot()
                    for hold in self._holds.values()
                    if not hold.is_expired(now) and hold.expires_at - now <= seconds
                ),
                key=lambda hold: hold.expires_at,
            )

    def is_confirmed(self, seat: SeatKey) -> bool:
        with self._lock:
            return self._is_confirmed(seat, self._clock())

    def confirmed_seat_ids(self, showtime_id: int) -> set[str]:
        with self._lock:
            now = self._clock()
            return {
                seat.seat_id
                for seat in list(self._confirmed)
                if seat.showtime_id == showtime_id and self._is_confirmed(seat, now)
            }

    def statistics(self) -> dict:
        with self._lock:
            now = self._clock()
            live = [hold for hold in self._holds.values() if self._live_hold(hold.seat, now)]
            per_showtime: dict[int, int] = {}
            for hold in live:
                per_showtime[hold.seat.showtime_id] = per_showtime.get(hold.seat.showtime_id, 0) + 1
            return {
                'total_held_seats': len(live),
                'total_holders': len({hold.user_id for hold in live}),
                'active_showtimes': len(per_showtime),
                'held_seats_by_showtime': per_showtime,
            }

    def __len__(self) -> int:
        return len(self._holds)

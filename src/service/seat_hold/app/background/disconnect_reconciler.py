"""
Disconnect Reconciler

A dropped connection keeps its holds for a short grace window so a reload or
network blip does not cost the user their selection.

- schedule(): one cancellable timer per disconnected connection
- cancel_for(): a new connection of the same user joining the same showtime
  cancels the timer and adopts the old connection's holds
- When a timer fires, the old connection's holds are released and every
  affected showtime gets a fresh snapshot
"""

import asyncio
from typing import Optional

import anyio
import attrs

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.service.seat_hold.app.command.seats_state_publisher import SeatsStatePublisher
from src.service.seat_hold.app.dto import ReleaseSummary
from src.service.seat_hold.app.interface import IHoldStore
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.hold_outcome import ReleaseReason


@attrs.define
class PendingRelease:
    connection_id: str
    user_id: int
    showtime_id: Optional[int]
    task: Optional[asyncio.Task] = None


class DisconnectReconciler:
    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        publisher: SeatsStatePublisher,
        grace_seconds: float = settings.DISCONNECT_GRACE_SECONDS,
    ) -> None:
        self.hold_store = hold_store
        self.publisher = publisher
        self.grace_seconds = grace_seconds
        self._pending: dict[str, PendingRelease] = {}  # connection_id -> timer

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, connection_id: str) -> bool:
        return connection_id in self._pending

    def schedule(self, session: Session) -> PendingRelease:
        existing = self._pending.pop(session.connection_id, None)
        if existing is not None and existing.task is not None:
            existing.task.cancel()

        pending = PendingRelease(
            connection_id=session.connection_id,
            user_id=session.user_id,
            showtime_id=session.showtime_id,
        )
        pending.task = asyncio.create_task(
            self._release_after_grace(pending), name=f'seat-hold-release-{session.connection_id}'
        )
        self._pending[session.connection_id] = pending
        metrics.pending_releases.set(len(self._pending))

        Logger.base.info(
            f'⏳ [RECONCILER] {session.connection_id} (user {session.user_id}) disconnected, '
            f'release in {self.grace_seconds}s'
        )
        return pending

    def cancel_for(self, *, user_id: int, showtime_id: int, new_connection_id: str) -> int:
        """
        Cancel the user's pending releases for this showtime and move the held
        seats onto the new connection. Returns the number of seats adopted.
        """
        adopted = 0
        for connection_id, pending in list(self._pending.items()):
            if connection_id == new_connection_id or pending.user_id != user_id:
                continue
            if pending.showtime_id is not None and pending.showtime_id != showtime_id:
                continue

            del self._pending[connection_id]
            if pending.task is not None:
                pending.task.cancel()
            adopted += self.hold_store.rehome(
                user_id,
                from_connection_id=connection_id,
                to_connection_id=new_connection_id,
            )
            Logger.base.info(
                f'🔁 [RECONCILER] User {user_id} reconnected as {new_connection_id}, '
                f'cancelled release of {connection_id}'
            )

        metrics.pending_releases.set(len(self._pending))
        return adopted

    async def _release_after_grace(self, pending: PendingRelease) -> None:
        await anyio.sleep(self.grace_seconds)

        # Cancelled or replaced while sleeping
        if self._pending.get(pending.connection_id) is not pending:
            return
        del self._pending[pending.connection_id]
        metrics.pending_releases.set(len(self._pending))

        try:
            await self.release_now(pending)
        except Exception as e:
            Logger.base.exception(
                f'❌ [RECONCILER] Release for {pending.connection_id} failed: '
                f'{type(e).__name__}: {e}'
            )

    async def release_now(self, pending: PendingRelease) -> ReleaseSummary:
        summary = ReleaseSummary(
            released=self.hold_store.release_all(
                pending.user_id, connection_id=pending.connection_id
            )
        )
        if not summary.count:
            return summary

        by_showtime = summary.by_showtime()
        for showtime_id, holds in by_showtime.items():
            metrics.record_released(
                showtime_id=showtime_id, reason=ReleaseReason.DISCONNECT.value, count=len(holds)
            )
        Logger.base.info(
            f'🔓 [RECONCILER] Released {summary.seat_ids()} of {pending.connection_id}'
        )
        for showtime_id in by_showtime:
            await self.publisher.publish(showtime_id=showtime_id)
        return summary

    async def shutdown(self) -> None:
        """Cancel every timer and wait for them; holds are left to expire"""
        pending, self._pending = list(self._pending.values()), {}
        tasks = [entry.task for entry in pending if entry.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        metrics.pending_releases.set(0)
        Logger.base.info(f'🛑 [RECONCILER] Cancelled {len(tasks)} pending releases')

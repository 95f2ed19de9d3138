"""
Expiration Sweeper

Periodically reclaims holds whose deadline passed without release (idle tab,
crashed client) and republishes the seat map of every affected showtime.
"""

import asyncio
from typing import Optional

import anyio

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.service.seat_hold.app.command.seats_state_publisher import SeatsStatePublisher
from src.service.seat_hold.app.interface import IHoldStore
from src.service.seat_hold.domain.enum.hold_outcome import ReleaseReason


class ExpirationSweeper:
    def __init__(
        self,
        *,
        hold_store: IHoldStore,
        publisher: SeatsStatePublisher,
        interval_seconds: float = settings.SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self.hold_store = hold_store
        self.publisher = publisher
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name='seat-hold-expiration-sweeper')
        Logger.base.info(f'🧹 [SWEEPER] Started (interval={self.interval_seconds}s)')

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        Logger.base.info('🛑 [SWEEPER] Stopped')

    async def _run(self) -> None:
        while True:
            await anyio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                # One bad tick must not end the loop
                Logger.base.exception(f'❌ [SWEEPER] Sweep failed: {type(e).__name__}: {e}')

    async def sweep_once(self) -> int:
        """Release every due hold; returns how many were reclaimed"""
        expired = self.hold_store.expire_due()
        if not expired:
            return 0

        total = 0
        for showtime_id, holds in expired.items():
            total += len(holds)
            metrics.record_released(
                showtime_id=showtime_id, reason=ReleaseReason.EXPIRED.value, count=len(holds)
            )
            Logger.base.info(
                f'⏰ [SWEEPER] Showtime {showtime_id}: released '
                f'{[hold.seat.seat_id for hold in holds]}'
            )

        for showtime_id in expired:
            await self.publisher.publish(showtime_id=showtime_id)

        metrics.active_holds.set(self.hold_store.statistics()['total_held_seats'])
        return total

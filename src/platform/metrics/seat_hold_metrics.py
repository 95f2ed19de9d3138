from prometheus_client import Counter, Gauge, Histogram


class SeatHoldMetrics:
    """
    Seat hold coordinator metrics

    Tracks hold outcomes, reclaimed holds, booking commits and live sessions
    """

    def __init__(self):
        # ========== Hold Metrics ==========
        self.hold_requests = Counter(
            'seat_hold_requests_total',
            'Seat hold requests by outcome',
            ['showtime_id', 'result'],  # result: acquired/seat_already_held/...
        )

        self.holds_released = Counter(
            'seat_holds_released_total',
            'Seat holds released',
            ['showtime_id', 'reason'],  # reason: deselect/clear_all/disconnect/expired/admin
        )

        self.active_holds = Gauge('seat_holds_active', 'Seat holds currently in memory')

        # ========== Booking Metrics ==========
        self.booking_commits = Counter(
            'seat_hold_booking_commits_total',
            'Booking commits by result',
            ['showtime_id', 'result'],  # result: confirmed/rejected/failed
        )

        self.booking_commit_duration = Histogram(
            'seat_hold_booking_commit_duration_seconds',
            'Durable booking commit time',
            ['showtime_id'],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0],
        )

        # ========== Session Metrics ==========
        self.connected_sessions = Gauge(
            'seat_hold_connected_sessions', 'Live real-time sessions'
        )

        self.pending_releases = Gauge(
            'seat_hold_pending_releases', 'Disconnect releases waiting for the grace window'
        )

    # ========== Helper Methods ==========

    def record_hold_request(self, *, showtime_id: int, result: str) -> None:
        self.hold_requests.labels(showtime_id=showtime_id, result=result).inc()

    def record_released(self, *, showtime_id: int, reason: str, count: int = 1) -> None:
        if count:
            self.holds_released.labels(showtime_id=showtime_id, reason=reason).inc(count)

    def record_booking_commit(self, *, showtime_id: int, result: str, duration: float) -> None:
        self.booking_commits.labels(showtime_id=showtime_id, result=result).inc()
        self.booking_commit_duration.labels(showtime_id=showtime_id).observe(duration)


metrics = SeatHoldMetrics()

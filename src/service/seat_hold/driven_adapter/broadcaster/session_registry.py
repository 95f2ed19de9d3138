"""
Session Registry / Broadcaster

Explicit showtime -> sessions map owned by the seat hold service. Fan-out is
synchronous: a message is queued on every member's outbox before the caller
continues, so members see group events in the order the transitions happened.
"""

from typing import Any, Optional

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.seat_hold_metrics import metrics
from src.service.seat_hold.domain.entity.session import Session


class SessionRegistry:
    def __init__(self) -> None:
        self.group_sessions: dict[int, set[Session]] = {}
        self.sessions: dict[str, Session] = {}

    def register(self, session: Session) -> None:
        self.sessions[session.connection_id] = session
        metrics.connected_sessions.set(len(self.sessions))

    def unregister(self, session: Session) -> Optional[int]:
        """Forget the session entirely; returns the showtime it was viewing"""
        showtime_id = self.leave(session)
        self.sessions.pop(session.connection_id, None)
        metrics.connected_sessions.set(len(self.sessions))
        return showtime_id

    def join(self, session: Session, showtime_id: int) -> Optional[int]:
        """Move the session into a showtime group; returns the group it left"""
        previous = session.showtime_id
        if previous == showtime_id and session in self.group_sessions.get(showtime_id, ()):
            return None

        self.leave(session)
        self.group_sessions.setdefault(showtime_id, set()).add(session)
        session.showtime_id = showtime_id
        self.sessions.setdefault(session.connection_id, session)

        Logger.base.debug(
            f'👥 [REGISTRY] {session.connection_id} joined showtime {showtime_id} '
            f'(group size: {self.get_group_size(showtime_id)})'
        )
        return previous

    def leave(self, session: Session) -> Optional[int]:
        showtime_id = session.showtime_id
        if showtime_id is None:
            return None

        group = self.group_sessions.get(showtime_id)
        if group is not None:
            group.discard(session)
            if not group:
                del self.group_sessions[showtime_id]
        session.showtime_id = None
        return showtime_id

    def broadcast(
        self,
        showtime_id: int,
        message: dict[str, Any],
        *,
        exclude: Optional[Session] = None,
    ) -> int:
        group = self.group_sessions.get(showtime_id)
        if not group:
            return 0

        delivered = 0
        disconnected: list[Session] = []
        for session in list(group):
            if session is exclude:
                continue
            if session.deliver(message):
                delivered += 1
            elif not session.channel.is_open:
                disconnected.append(session)

        for session in disconnected:
            self.leave(session)
            Logger.base.info(f'🧹 [REGISTRY] Dropped dead session {session.connection_id}')

        return delivered

    def send_to(self, session: Session, message: dict[str, Any]) -> bool:
        return session.deliver(message)

    def sessions_for_user(self, user_id: int) -> list[Session]:
        return [session for session in self.sessions.values() if session.user_id == user_id]

    def get_group_size(self, showtime_id: int) -> int:
        return len(self.group_sessions.get(showtime_id, ()))

    def group_sizes(self) -> dict[int, int]:
        return {showtime_id: len(group) for showtime_id, group in self.group_sessions.items()}

    @property
    def session_count(self) -> int:
        return len(self.sessions)

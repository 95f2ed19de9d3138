"""
Session Broadcaster Interface

Use cases fan out seat events through this protocol; the session registry
implements it.
"""

from typing import Any, Optional, Protocol

from src.service.seat_hold.domain.entity.session import Session


class ISessionBroadcaster(Protocol):
    def join(self, session: Session, showtime_id: int) -> Optional[int]:
        """Move the session into the showtime group; returns the group it left"""
        ...

    def leave(self, session: Session) -> Optional[int]: ...

    def register(self, session: Session) -> None: ...

    def unregister(self, session: Session) -> Optional[int]: ...

    def broadcast(
        self, showtime_id: int, message: dict[str, Any], *, exclude: Optional[Session] = None
    ) -> int:
        """
        Queue the message on every member of the group.

        Never awaits, so members observe group events in transition order.
        """
        ...

    def send_to(self, session: Session, message: dict[str, Any]) -> bool: ...

    def sessions_for_user(self, user_id: int) -> list[Session]: ...

    def group_sizes(self) -> dict[int, int]: ...

    @property
    def session_count(self) -> int: ...

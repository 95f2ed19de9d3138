import time
from typing import Any, Optional, Protocol

import attrs

from src.service.seat_hold.domain.value_object.seat_key import HolderRef


class SessionChannel(Protocol):
    """Outbound side of one live connection"""

    def deliver(self, message: dict[str, Any]) -> bool:
        """Queue a message without blocking; False when the connection is gone or full."""
        ...

    @property
    def is_open(self) -> bool: ...


class DetachedChannel:
    """Channel of a request without a connection (HTTP); drops every message"""

    @property
    def is_open(self) -> bool:
        return False

    def deliver(self, message: dict[str, Any]) -> bool:
        return False


@attrs.define(eq=False)
class Session:
    """
    One authenticated real-time connection.

    Hashes by identity so it can live in the registry's group sets.
    """

    connection_id: str
    user_id: int
    channel: SessionChannel
    role: str = 'customer'
    showtime_id: Optional[int] = None
    connected_at: float = attrs.field(factory=time.time)

    @classmethod
    def detached(cls, *, user_id: int, role: str = 'customer') -> 'Session':
        """
        Holder for HTTP seat operations.

        Never joins a showtime group and is never scheduled for disconnect
        release; its holds end by deselect, confirmation or expiry.
        """
        return cls(
            connection_id=f'http-{user_id}', user_id=user_id, channel=DetachedChannel(), role=role
        )

    @property
    def is_attached(self) -> bool:
        return not isinstance(self.channel, DetachedChannel)

    @property
    def holder(self) -> HolderRef:
        return HolderRef(user_id=self.user_id, connection_id=self.connection_id)

    def deliver(self, message: dict[str, Any]) -> bool:
        return self.channel.deliver(message)

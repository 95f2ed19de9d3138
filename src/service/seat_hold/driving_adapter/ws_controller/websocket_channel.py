"""
WebSocket Channel

Ordered outbox for one connection. Broadcasts queue messages without awaiting;
a single writer task drains the outbox onto the socket, so the connection
receives messages in the order they were queued.

A full outbox means the client stopped reading: the channel closes and the
connection is dropped instead of blocking other sessions.
"""

from typing import Any

import anyio
from anyio import WouldBlock, create_memory_object_stream
from fastapi import WebSocket, WebSocketDisconnect

from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.driving_adapter.ws_controller.message_codec import MessageCodec


class WebSocketChannel:
    def __init__(self, websocket: WebSocket, *, use_binary: bool, outbox_size: int) -> None:
        self.websocket = websocket
        self.use_binary = use_binary
        self._send_stream, self._receive_stream = create_memory_object_stream[dict](
            max_buffer_size=outbox_size
        )
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def deliver(self, message: dict[str, Any]) -> bool:
        if not self._open:
            return False
        try:
            self._send_stream.send_nowait(message)
            return True
        except WouldBlock:
            Logger.base.warning('🐌 [WS] Outbox full, dropping slow connection')
            self.close()
            return False
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            self._open = False
            return False

    def close(self) -> None:
        self._open = False
        self._send_stream.close()

    async def run_writer(self) -> None:
        """Drain the outbox until the channel closes or the socket goes away"""
        try:
            async with self._receive_stream:
                async for message in self._receive_stream:
                    encoded = MessageCodec.encode_message(data=message, use_binary=self.use_binary)
                    if isinstance(encoded, bytes):
                        await self.websocket.send_bytes(encoded)
                    else:
                        await self.websocket.send_text(encoded)
        except (WebSocketDisconnect, RuntimeError, ConnectionError) as e:
            Logger.base.debug(f'🔌 [WS] Writer stopped: {type(e).__name__}')
        finally:
            self._open = False

import asyncio

import anyio
from fastapi import WebSocket
from starlette.websockets import WebSocketState
import uuid_utils

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import ServiceUnavailableError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.seat_hold_coordinator import SeatHoldCoordinator
from src.service.seat_hold.domain.entity.authenticated_user import AuthenticatedUser
from src.service.seat_hold.domain.entity.session import Session
from src.service.seat_hold.domain.enum.ws_event import OutboundEvent, envelope
from src.service.seat_hold.driving_adapter.ws_controller.message_codec import MessageCodec
from src.service.seat_hold.driving_adapter.ws_controller.message_handler import (
    SeatHoldMessageHandler,
)
from src.service.seat_hold.driving_adapter.ws_controller.websocket_channel import (
    WebSocketChannel,
)
from src.service.seat_hold.driving_adapter.ws_controller.websocket_config import (
    WebSocketConfig,
    WebSocketErrorCode,
)


class SeatHoldWebSocketService:
    """
    Runs one authenticated connection:
    - writer task drains the session outbox
    - reader task decodes frames and handles them one at a time
    - ping task sends an application-level ping
    The first task to finish ends the connection; the coordinator then
    schedules the grace-period release.
    """

    def __init__(
        self,
        *,
        coordinator: SeatHoldCoordinator,
        ping_interval: float = settings.WS_PING_INTERVAL_SECONDS,
        use_binary: bool = settings.WS_USE_BINARY,
        outbox_size: int = settings.WS_OUTBOX_SIZE,
    ) -> None:
        self.coordinator = coordinator
        self.ping_interval = ping_interval
        self.use_binary = use_binary
        self.outbox_size = outbox_size
        self.message_handler = SeatHoldMessageHandler(coordinator=coordinator)

    async def handle_connection(self, websocket: WebSocket, user: AuthenticatedUser) -> None:
        channel = WebSocketChannel(
            websocket, use_binary=self.use_binary, outbox_size=self.outbox_size
        )
        session = Session(
            connection_id=str(uuid_utils.uuid7()),
            user_id=user.id,
            role=user.role.value,
            channel=channel,
        )

        try:
            self.coordinator.connect(session)
        except ServiceUnavailableError:
            await websocket.close(code=WebSocketConfig.CLOSE_TRY_AGAIN_LATER)
            return

        writer_task = asyncio.create_task(channel.run_writer())
        reader_task = asyncio.create_task(self._handle_messages(websocket, session))
        ping_task = asyncio.create_task(self._ping_loop(session))
        close_code = 1000
        try:
            done, pending = await asyncio.wait(
                {writer_task, reader_task, ping_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if writer_task in done:
                close_code = WebSocketConfig.CLOSE_SLOW_CONSUMER
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        finally:
            channel.close()
            await self.coordinator.disconnect(session)
            if (
                websocket.client_state == WebSocketState.CONNECTED
                and websocket.application_state == WebSocketState.CONNECTED
            ):
                try:
                    await websocket.close(code=close_code)
                except RuntimeError:
                    pass

    async def _handle_messages(self, websocket: WebSocket, session: Session) -> None:
        while True:
            raw_message = await websocket.receive()

            if raw_message['type'] == 'websocket.disconnect':
                return
            if raw_message['type'] != 'websocket.receive':
                continue

            raw_data = raw_message.get('text')
            if raw_data is None:
                raw_data = raw_message.get('bytes')
            if raw_data is None:
                continue

            try:
                message = MessageCodec.decode_message(raw_data=raw_data)
            except ValueError as e:
                session.deliver(
                    envelope(
                        OutboundEvent.ERROR,
                        {'message': str(e), 'code': WebSocketErrorCode.INVALID_MESSAGE},
                    )
                )
                continue

            await self.message_handler.handle_message(session, message)

    async def _ping_loop(self, session: Session) -> None:
        while True:
            await anyio.sleep(self.ping_interval)
            if not session.deliver(
                envelope(OutboundEvent.PING, {'timestamp': self.coordinator.hold_store.now()})
            ):
                Logger.base.debug(f'🔌 [WS] Ping to {session.connection_id} failed, closing')
                return

from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, WebSocket

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import AuthenticationError
from src.platform.logging.loguru_io import Logger
from src.service.seat_hold.app.seat_hold_coordinator import SeatHoldCoordinator
from src.service.seat_hold.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from src.service.seat_hold.driving_adapter.ws_controller.seat_hold_websocket_service import (
    SeatHoldWebSocketService,
)
from src.service.seat_hold.driving_adapter.ws_controller.websocket_config import (
    WebSocketConfig,
)


router = APIRouter()


def extract_token(websocket: WebSocket) -> Optional[str]:
    """Bearer header, then `token` query parameter, then auth cookie"""
    authorization = websocket.headers.get('authorization', '')
    scheme, _, credentials = authorization.partition(' ')
    if scheme.lower() == 'bearer' and credentials.strip():
        return credentials.strip()
    return websocket.query_params.get('token') or websocket.cookies.get(
        settings.WS_AUTH_COOKIE_NAME
    )


@router.websocket(WebSocketConfig.PATH)
@inject
async def seat_selection_websocket(
    websocket: WebSocket,
    coordinator: SeatHoldCoordinator = Depends(Provide[Container.seat_hold_coordinator]),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> None:
    await websocket.accept()

    try:
        user = jwt_auth.get_current_user_info_from_jwt(extract_token(websocket))
    except AuthenticationError as e:
        Logger.base.warning(f'🔐 [WS] Rejected connection: {e.message}')
        await websocket.close(code=WebSocketConfig.CLOSE_UNAUTHORIZED, reason=e.message)
        return

    service = SeatHoldWebSocketService(coordinator=coordinator)
    await service.handle_connection(websocket, user)

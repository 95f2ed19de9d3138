"""
Unit tests for the real-time endpoint (TestClient WebSocket, in-memory coordinator)

Test Coverage:
1. Connections without a valid token are closed with 4001
2. Token via query parameter, header or cookie
3. Join, select and conflict over the wire
4. Malformed frames answered with an error, connection stays open
"""

import pytest
from starlette.websockets import WebSocketDisconnect

from src.service.seat_hold.domain.value_object.seat_key import SeatKey
from src.service.seat_hold.driving_adapter.ws_controller.websocket_config import (
    WebSocketConfig,
)


pytestmark = pytest.mark.unit

WS_PATH = WebSocketConfig.PATH


def receive_until(ws, event: str, limit: int = 10) -> dict:
    for _ in range(limit):
        message = ws.receive_json()
        if message['event'] == event:
            return message['data']
    raise AssertionError(f'{event} not received')


class TestAuthentication:
    def test_missing_token_is_closed_with_4001(self, client):
        with client.websocket_connect(WS_PATH) as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == WebSocketConfig.CLOSE_UNAUTHORIZED

    def test_invalid_token_is_closed_with_4001(self, client):
        with client.websocket_connect(f'{WS_PATH}?token=garbage') as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == WebSocketConfig.CLOSE_UNAUTHORIZED

    def test_bearer_header_is_accepted(self, client, jwt_auth):
        token = jwt_auth.create_jwt_token(user_id=5)

        with client.websocket_connect(WS_PATH, headers={'Authorization': f'Bearer {token}'}) as ws:
            connected = ws.receive_json()

        assert connected['event'] == 'connected'
        assert connected['data']['user_id'] == 5


class TestSeatSelection:
    def test_join_and_select(self, client, jwt_auth, seat_hold):
        token = jwt_auth.create_jwt_token(user_id=5)

        with client.websocket_connect(f'{WS_PATH}?token={token}') as ws:
            # Given
            assert ws.receive_json()['event'] == 'connected'

            # When
            ws.send_json({'event': 'join-showtime', 'data': {'showtimeId': 1}})
            seats = receive_until(ws, 'seats-state')
            ws.send_json({'event': 'select-seat', 'data': {'showtimeId': 1, 'seatId': 'A1'}})
            selected = receive_until(ws, 'seat-selected')

            # Then
            assert len(seats['seats']) == 6
            assert selected['seat_id'] == 'A1'
            assert selected['user_id'] == 5
            assert seat_hold.store.get_hold(SeatKey(1, 'A1')).user_id == 5

    def test_second_user_gets_conflict(self, client, jwt_auth, seat_hold):
        alice = jwt_auth.create_jwt_token(user_id=1)
        bob = jwt_auth.create_jwt_token(user_id=2)

        with client.websocket_connect(f'{WS_PATH}?token={alice}') as alice_ws:
            receive_until(alice_ws, 'connected')
            alice_ws.send_json(
                {'event': 'select-seat', 'data': {'showtime_id': 1, 'seat_id': 'B1'}}
            )
            receive_until(alice_ws, 'seat-selected')

            with client.websocket_connect(f'{WS_PATH}?token={bob}') as bob_ws:
                receive_until(bob_ws, 'connected')
                bob_ws.send_json(
                    {'event': 'select-seat', 'data': {'showtime_id': 1, 'seat_id': 'B1'}}
                )
                conflict = receive_until(bob_ws, 'seat-conflict')

        assert conflict['reason'] == 'SEAT_ALREADY_HELD'
        assert conflict['seat_id'] == 'B1'

    def test_malformed_frame_keeps_connection_open(self, client, jwt_auth):
        token = jwt_auth.create_jwt_token(user_id=5)

        with client.websocket_connect(f'{WS_PATH}?token={token}') as ws:
            receive_until(ws, 'connected')
            ws.send_text('this is not json')
            error = receive_until(ws, 'error')
            ws.send_json({'event': 'ping'})
            pong = receive_until(ws, 'pong')

        assert error['code'] == 'INVALID_MESSAGE'
        assert 'timestamp' in pong

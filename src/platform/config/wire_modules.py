"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.seat_hold.driving_adapter.http_controller import seat_hold_controller
from src.service.seat_hold.driving_adapter.http_controller.auth import role_auth
from src.service.seat_hold.driving_adapter.ws_controller import seat_hold_ws_controller


WIRE_MODULES: list[ModuleType] = [
    role_auth,
    seat_hold_controller,
    seat_hold_ws_controller,
]

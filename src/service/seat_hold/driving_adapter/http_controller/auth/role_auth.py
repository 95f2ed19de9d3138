from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.service.seat_hold.domain.entity.authenticated_user import AuthenticatedUser
from src.service.seat_hold.domain.enum.user_role import UserRole
from src.service.seat_hold.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


class RoleAuthStrategy:
    @staticmethod
    def can_view_statistics(user: AuthenticatedUser) -> bool:
        return user.role in (UserRole.ADMIN, UserRole.MANAGER)

    @staticmethod
    def can_administer_holds(user: AuthenticatedUser) -> bool:
        return user.role == UserRole.ADMIN


@inject
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    cookie_token: Optional[str] = Cookie(None, alias=settings.WS_AUTH_COOKIE_NAME),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> AuthenticatedUser:
    """Stateless: the token alone identifies the user, no DB query"""
    token = credentials.credentials if credentials else cookie_token
    return jwt_auth.get_current_user_info_from_jwt(token)


async def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        'auth.require_admin',
        attributes={'user.id': current_user.id, 'user.role': current_user.role.value},
    ):
        if not RoleAuthStrategy.can_administer_holds(current_user):
            raise ForbiddenError('Only admins can perform this action')
        return current_user


async def require_admin_or_manager(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not RoleAuthStrategy.can_view_statistics(current_user):
        raise ForbiddenError("You don't have permission to perform this action")
    return current_user

"""
JWT verification shared by the HTTP API and the real-time endpoint
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.seat_hold.domain.entity.authenticated_user import AuthenticatedUser
from src.service.seat_hold.domain.enum.user_role import UserRole


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = 7

    def create_jwt_token(
        self,
        *,
        user_id: int,
        role: UserRole = UserRole.CUSTOMER,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'user_id': user_id,
            'role': role.value,
            'iat': now,
            'exp': now + (expires_in or timedelta(days=self.token_expire_days)),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError('Token expired')
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid token')

    def get_current_user_info_from_jwt(self, token: Optional[str]) -> AuthenticatedUser:
        if not token:
            raise AuthenticationError('Not authenticated')

        payload = self.decode_jwt_token(token)

        raw_user_id = payload.get('user_id', payload.get('sub'))
        try:
            user_id = int(raw_user_id)
        except (TypeError, ValueError):
            raise AuthenticationError('Invalid token')
        if user_id <= 0:
            raise AuthenticationError('Invalid token')

        try:
            role = UserRole(payload.get('role') or UserRole.CUSTOMER)
        except ValueError:
            raise AuthenticationError('Invalid token')

        return AuthenticatedUser(id=user_id, role=role)

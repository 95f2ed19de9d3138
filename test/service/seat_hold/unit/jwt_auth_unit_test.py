"""
Unit tests for JwtAuth and role checks

Test Coverage:
1. Token round trip to AuthenticatedUser
2. Expired, tampered, missing and malformed tokens
3. Role strategy for statistics and admin operations
"""

from datetime import timedelta

import jwt
import pytest

from src.platform.exception.exceptions import AuthenticationError
from src.service.seat_hold.domain.entity.authenticated_user import AuthenticatedUser
from src.service.seat_hold.domain.enum.user_role import UserRole
from src.service.seat_hold.driving_adapter.http_controller.auth.role_auth import RoleAuthStrategy


pytestmark = pytest.mark.unit


class TestJwtAuth:
    def test_token_identifies_user_and_role(self, jwt_auth):
        token = jwt_auth.create_jwt_token(user_id=42, role=UserRole.MANAGER)

        user = jwt_auth.get_current_user_info_from_jwt(token)

        assert user == AuthenticatedUser(id=42, role=UserRole.MANAGER)

    def test_role_defaults_to_customer(self, jwt_auth):
        token = jwt.encode({'sub': '5'}, jwt_auth.secret, algorithm=jwt_auth.algorithm)

        user = jwt_auth.get_current_user_info_from_jwt(token)

        assert user.id == 5
        assert user.role == UserRole.CUSTOMER

    def test_expired_token(self, jwt_auth):
        token = jwt_auth.create_jwt_token(user_id=1, expires_in=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError, match='Token expired'):
            jwt_auth.get_current_user_info_from_jwt(token)

    def test_token_signed_with_other_secret(self, jwt_auth):
        token = jwt.encode({'user_id': 1}, 'some-other-secret', algorithm='HS256')

        with pytest.raises(AuthenticationError, match='Invalid token'):
            jwt_auth.get_current_user_info_from_jwt(token)

    @pytest.mark.parametrize('token', [None, '', 'not-a-jwt'])
    def test_missing_or_garbage_token(self, jwt_auth, token):
        with pytest.raises(AuthenticationError):
            jwt_auth.get_current_user_info_from_jwt(token)

    @pytest.mark.parametrize(
        'claims', [{'user_id': 0}, {'user_id': 'abc'}, {}, {'user_id': 3, 'role': 'pirate'}]
    )
    def test_invalid_claims(self, jwt_auth, claims):
        token = jwt.encode(claims, jwt_auth.secret, algorithm=jwt_auth.algorithm)

        with pytest.raises(AuthenticationError):
            jwt_auth.get_current_user_info_from_jwt(token)


class TestRoleAuthStrategy:
    @pytest.mark.parametrize(
        'role,can_view,can_administer',
        [
            (UserRole.ADMIN, True, True),
            (UserRole.MANAGER, True, False),
            (UserRole.STAFF, False, False),
            (UserRole.CUSTOMER, False, False),
        ],
    )
    def test_permissions(self, role, can_view, can_administer):
        user = AuthenticatedUser(id=1, role=role)

        assert RoleAuthStrategy.can_view_statistics(user) is can_view
        assert RoleAuthStrategy.can_administer_holds(user) is can_administer

import attrs

from src.service.seat_hold.domain.enum.user_role import UserRole


@attrs.frozen
class AuthenticatedUser:
    """Identity taken from a verified token; never loaded from the database here"""

    id: int
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

from enum import StrEnum


class UserRole(StrEnum):
    ADMIN = 'admin'
    MANAGER = 'manager'
    STAFF = 'staff'
    CUSTOMER = 'customer'

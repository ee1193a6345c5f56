from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"
    ADMIN = "admin"


def parse_role(value) -> Role | None:
    """Unknown or missing role values resolve to None, which every gate denies."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


STAFF_ROLES = frozenset({Role.EMPLOYEE, Role.ADMIN})

"""
Domain: Staff users.

Users are only referenced as the handler of a sale; login and permissions
live outside this system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import ValidationError


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    SALES = "SALES"


@dataclass(frozen=True, slots=True)
class User:
    user_id: str
    username: str
    display_name: str
    role: UserRole = UserRole.SALES
    active: bool = True

    def __post_init__(self) -> None:
        if not self.username or not self.username.strip():
            raise ValidationError("username is required", code="USERNAME_REQUIRED")


__all__ = ["UserRole", "User"]

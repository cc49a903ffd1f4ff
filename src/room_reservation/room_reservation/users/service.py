from __future__ import annotations

from typing import Optional

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import User
from .repository import UserRepository


class AuthService:
    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> User:
        username = require_non_empty(username, "Username")
        user = self._users.get_by_username(username)
        if not user or not user.is_active or not check_password_hash(user.password_hash, password or ""):
            raise AuthenticationError("Invalid username or password")
        return user

    def current_user(self, user_id: Optional[int]) -> User:
        """Resolve the session principal; a stale or disabled account counts as logged out."""
        if user_id is None:
            raise AuthenticationError("Login required")
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise AuthenticationError("Login required")
        return user


def require_booking_privilege(user: User) -> None:
    if not user.can_book:
        raise AuthorizationError("Only professors can hold reservations")


def require_admin(user: User) -> None:
    if not user.is_admin:
        raise AuthorizationError("Admin role required")

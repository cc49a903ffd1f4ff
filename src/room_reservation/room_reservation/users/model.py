from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Identity and role are owned by the users collection; this core only reads them.
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True

    @property
    def can_book(self) -> bool:
        return self.is_active and self.role == Role.PROFESSOR

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role == Role.ADMIN

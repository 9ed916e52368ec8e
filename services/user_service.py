"""User service: staff records used as sale handlers."""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from domain.errors import ConflictError, NotFoundError
from domain.user import User, UserRole
from repositories.store import EntityKind, EntityStore, UnitOfWork

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def get_user(self, user_id: str) -> User:
        user = self._store.get(EntityKind.USERS, user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}", code="USER_NOT_FOUND")
        return user

    def list_users(self) -> List[User]:
        return self._store.list_all(EntityKind.USERS)

    def create_user(
        self,
        username: str,
        display_name: Optional[str] = None,
        role: UserRole = UserRole.SALES,
        active: bool = True,
    ) -> User:
        username = (username or "").strip()
        user = User(
            user_id=str(uuid4()),
            username=username,
            display_name=(display_name or "").strip() or username,
            role=UserRole(role),
            active=active,
        )

        def apply(tx: UnitOfWork) -> User:
            if tx.query_by_field(EntityKind.USERS, "username", username):
                raise ConflictError(f"Username already exists: {username}", code="USERNAME_DUPLICATE")
            return tx.put(EntityKind.USERS, user)

        created = self._store.with_transaction(apply)
        logger.info("User created", extra={"user_id": created.user_id, "username": created.username})
        return created


__all__ = ["UserService"]

"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from usermgmt.db.models import User
from usermgmt.db.session import acquire_write_lock, get_session
from usermgmt.domain.admin_floor import MutationKind, assert_admin_floor
from usermgmt.domain.users import normalize_email

_UPDATABLE_COLUMNS = {"name", "email", "is_admin", "password_hash"}


def guarded_rows_statement(user_id: str) -> Select:
    """Target row plus every admin row, locked in primary-key order.

    A fixed lock order keeps two concurrent guarded writes from deadlocking
    on each other's rows.
    """
    return (
        select(User)
        .where(or_(User.is_admin.is_(True), User.id == user_id))
        .order_by(User.id)
        .with_for_update()
    )


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- reads --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        with get_session() as session:
            stmt = select(User).where(User.email == normalized)
            return session.execute(stmt).scalar_one_or_none()

    def list_users(self) -> list[User]:
        with get_session() as session:
            stmt = select(User).order_by(User.created_at, User.email)
            return list(session.execute(stmt).scalars().all())

    def count_users(self) -> int:
        with get_session() as session:
            return int(session.execute(select(func.count(User.id))).scalar_one())

    def count_admins(self) -> int:
        with get_session() as session:
            stmt = select(func.count(User.id)).where(User.is_admin.is_(True))
            return int(session.execute(stmt).scalar_one())

    # -------------------------- writes --------------------------
    def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        name: str | None = None,
        is_admin: bool = False,
    ) -> User:
        """Insert a user; the very first account in an empty store is always an admin."""
        now = datetime.now(timezone.utc)
        with get_session() as session:
            with session.begin():
                acquire_write_lock(session)
                existing = session.execute(select(func.count(User.id))).scalar_one()
                entity = User(
                    name=name,
                    email=normalize_email(email),
                    password_hash=password_hash,
                    is_admin=bool(is_admin) or existing == 0,
                    created_at=now,
                    updated_at=now,
                )
                session.add(entity)
            return entity

    def update_user(
        self,
        user_id: str,
        values: Mapping[str, Any],
        *,
        floor_check: MutationKind | None = None,
    ) -> Optional[User]:
        """Apply column updates and refresh ``updated_at``.

        With ``floor_check`` set, the target row and every admin row are locked
        and the admin floor is asserted before the write, all in one transaction.
        Returns None when the user does not exist.
        """
        unknown = set(values) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported user columns: {', '.join(sorted(unknown))}")
        with get_session() as session:
            with session.begin():
                acquire_write_lock(session)
                user = self._load_for_update(session, user_id, floor_check)
                if user is None:
                    return None
                for column, value in values.items():
                    if column == "email":
                        value = normalize_email(value)
                    setattr(user, column, value)
                user.updated_at = datetime.now(timezone.utc)
            return user

    def update_user_password(self, user_id: str, password_hash: str) -> None:
        self.update_user(user_id, {"password_hash": password_hash})

    def delete_user(self, user_id: str, *, floor_check: MutationKind | None = None) -> bool:
        """Delete a user; returns False when there was nothing to delete."""
        with get_session() as session:
            with session.begin():
                acquire_write_lock(session)
                user = self._load_for_update(session, user_id, floor_check)
                if user is None:
                    return False
                session.delete(user)
            return True

    # -------------------------- helpers --------------------------
    def _load_for_update(
        self, session: Session, user_id: str, floor_check: MutationKind | None = None
    ) -> Optional[User]:
        if not user_id:
            return None
        if floor_check is None:
            stmt = select(User).where(User.id == user_id).with_for_update()
            return session.execute(stmt).scalar_one_or_none()

        rows = session.execute(guarded_rows_statement(user_id)).scalars().all()
        user = next((row for row in rows if row.id == user_id), None)
        if user is not None and user.is_admin:
            admin_count = sum(1 for row in rows if row.is_admin)
            assert_admin_floor(True, admin_count, floor_check, user.id)
        return user

"""Roster persistence: lookups used by identity reconciliation plus admin CRUD."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import USER_ROLES, UserModel
from ..errors import ConflictError, IntegrityFaultError, NotFoundError, ValidationError
from .audit import record_audit
from .rubric import rubric

UserSort = Literal["name_asc", "name_desc", "stage"]
UPDATABLE_FIELDS = ("name", "email", "role", "current_stage_id")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _like_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserRepository:
    def get(self, session: Session, user_id: int) -> UserModel:
        user = session.get(UserModel, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_email(self, session: Session, email: str) -> Optional[UserModel]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        stmt = select(UserModel).where(UserModel.email == normalized)
        return session.execute(stmt).scalar_one_or_none()

    def find_for_identity(
        self,
        session: Session,
        external_id: Optional[str],
        email: str,
    ) -> Optional[UserModel]:
        """Return the single user matching the external id or the email.

        Two different rows matching (one by id, one by email) means the store
        already holds duplicate identities; that is reported, never merged.
        """
        clauses = [UserModel.email == normalize_email(email)]
        if external_id:
            clauses.append(UserModel.external_identity_id == external_id)
        stmt = select(UserModel).where(or_(*clauses)).order_by(UserModel.id.asc())
        matches = list(session.execute(stmt).scalars().all())
        if len(matches) > 1:
            raise IntegrityFaultError(
                "multiple users match this identity",
                details={"user_ids": [user.id for user in matches]},
            )
        return matches[0] if matches else None

    def create(
        self,
        session: Session,
        *,
        name: str,
        email: str,
        role: str,
        external_id: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> UserModel:
        """Insert a user; IntegrityError from the uniqueness constraints propagates."""
        _require_role(role)
        user = UserModel(
            name=name,
            email=normalize_email(email),
            role=role,
            external_identity_id=external_id or None,
            password_hash=password_hash,
            current_stage_id=rubric.first_stage_id(session),
        )
        session.add(user)
        session.flush()
        record_audit(session, user.id, "user_created", {"role": role, "linked": bool(external_id)})
        return user

    def link_external_identity(self, session: Session, user: UserModel, external_id: str) -> UserModel:
        user.external_identity_id = external_id
        session.flush()
        record_audit(session, user.id, "user_linked", {"external_id": external_id})
        return user

    def list(
        self,
        session: Session,
        *,
        role: Optional[str] = None,
        search: Optional[str] = None,
        stage_id: Optional[int] = None,
        sort: Optional[UserSort] = None,
    ) -> list[UserModel]:
        stmt = select(UserModel)
        if role:
            stmt = stmt.where(UserModel.role == role)
        if stage_id is not None:
            stmt = stmt.where(UserModel.current_stage_id == stage_id)
        if search and search.strip():
            pattern = f"%{_like_literal(search.strip().lower())}%"
            stmt = stmt.where(
                or_(
                    func.lower(UserModel.name).like(pattern, escape="\\"),
                    UserModel.email.like(pattern, escape="\\"),
                )
            )
        if sort == "name_asc":
            stmt = stmt.order_by(func.lower(UserModel.name).asc(), UserModel.id.asc())
        elif sort == "name_desc":
            stmt = stmt.order_by(func.lower(UserModel.name).desc(), UserModel.id.asc())
        elif sort == "stage":
            stmt = stmt.order_by(UserModel.current_stage_id.asc(), UserModel.id.asc())
        else:
            stmt = stmt.order_by(UserModel.id.asc())
        return list(session.execute(stmt).scalars().all())

    def update(self, session: Session, user_id: int, changes: Dict[str, Any]) -> UserModel:
        user = self.get(session, user_id)
        applied: Dict[str, Any] = {}
        for key in UPDATABLE_FIELDS:
            if key not in changes:
                continue
            value = changes[key]
            if key == "email":
                value = normalize_email(value)
                if not value:
                    raise ValidationError("email required")
            elif key == "name":
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError("name required")
                value = value.strip()
            elif key == "role":
                _require_role(value)
            elif key == "current_stage_id" and value is not None:
                rubric.get_stage(session, value)
            setattr(user, key, value)
            applied[key] = value
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError("User", "email", changes.get("email")) from exc
        if applied:
            record_audit(session, user.id, "user_updated", {"fields": sorted(applied)}, actor="admin")
        return user

    def assign_stage(self, session: Session, user_id: int, stage_id: int) -> UserModel:
        user = self.get(session, user_id)
        rubric.get_stage(session, stage_id)
        previous = user.current_stage_id
        user.current_stage_id = stage_id
        session.flush()
        record_audit(session, user.id, "stage_assigned", {"from": previous, "to": stage_id})
        return user

    def delete(self, session: Session, user_id: int) -> None:
        user = self.get(session, user_id)
        record_audit(session, None, "user_deleted", {"user_id": user.id, "email": user.email}, actor="admin")
        session.delete(user)
        session.flush()


def _require_role(role: Any) -> None:
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of {', '.join(USER_ROLES)}")


users = UserRepository()

__all__ = ["UserRepository", "normalize_email", "users"]

"""ORM models backing the rubric, roster, invitations and progress ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin, utcnow

JSONType = JSON

USER_ROLES = ("admin", "coach", "player")
PROGRESS_STATUSES = ("not_started", "level_1", "level_2", "level_3", "level_4", "level_5")
INVITATION_STATUSES = ("pending", "accepted")


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class StageModel(Base):
    __tablename__ = "stages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    skill_links: Mapped[list["StageSkillModel"]] = relationship(
        back_populates="stage", cascade="all, delete-orphan", passive_deletes=True
    )


class SkillModel(Base):
    __tablename__ = "skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    level_1: Mapped[str] = mapped_column(Text, default="", nullable=False)
    level_2: Mapped[str] = mapped_column(Text, default="", nullable=False)
    level_3: Mapped[str] = mapped_column(Text, default="", nullable=False)
    level_4: Mapped[str] = mapped_column(Text, default="", nullable=False)
    level_5: Mapped[str] = mapped_column(Text, default="", nullable=False)

    stage_links: Mapped[list["StageSkillModel"]] = relationship(
        back_populates="skill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StageSkillModel.stage_id",
    )

    @property
    def stage_ids(self) -> list[int]:
        return sorted(link.stage_id for link in self.stage_links)

    @property
    def stage_id(self) -> Optional[int]:
        ids = self.stage_ids
        return ids[0] if ids else None


class StageSkillModel(Base):
    __tablename__ = "stage_skills"

    stage_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stages.id", ondelete="CASCADE"), primary_key=True
    )
    skill_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True
    )

    stage: Mapped[StageModel] = relationship(back_populates="skill_links")
    skill: Mapped[SkillModel] = relationship(back_populates="stage_links")


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_email", "email", unique=True),
        Index("ix_users_external_identity_id", "external_identity_id", unique=True),
        CheckConstraint(_in_clause("role", USER_ROLES), name="role_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_identity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(16), default="player", nullable=False)
    current_stage_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("stages.id", ondelete="SET NULL"), nullable=True
    )
    password_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    progress: Mapped[list["ProgressModel"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    invitations: Mapped[list["InvitationModel"]] = relationship(
        back_populates="coach", cascade="all, delete-orphan", passive_deletes=True
    )


class ProgressModel(Base):
    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint(_in_clause("status", PROGRESS_STATUSES), name="status_valid"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    skill_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(16), default="not_started", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    user: Mapped[UserModel] = relationship(back_populates="progress")


class InvitationModel(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_token", "token", unique=True),
        Index("ix_invitations_email_status", "email", "status"),
        CheckConstraint(_in_clause("status", INVITATION_STATUSES), name="status_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    coach_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    coach: Mapped[UserModel] = relationship(back_populates="invitations")

    @property
    def coach_name(self) -> Optional[str]:
        return self.coach.name if self.coach is not None else None


class AuditEventModel(Base):
    __tablename__ = "audit_events"
    __table_args__ = (Index("ix_audit_events_user", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


__all__ = [
    "AuditEventModel",
    "INVITATION_STATUSES",
    "InvitationModel",
    "PROGRESS_STATUSES",
    "ProgressModel",
    "SkillModel",
    "StageModel",
    "StageSkillModel",
    "USER_ROLES",
    "UserModel",
]

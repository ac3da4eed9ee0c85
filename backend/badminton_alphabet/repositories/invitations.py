"""Invitation registry: single-use tokens that let a coach admit a player.

Policy for repeated invitations to the same address: every call creates a new
row, and lookups by email pick the most recent pending one.
"""

from __future__ import annotations

import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..db.base import utcnow
from ..db.models import InvitationModel
from ..errors import AuthorizationError, NotFoundError, ValidationError
from .audit import record_audit
from .users import normalize_email, users

TOKEN_BYTES = 24
INVITING_ROLES = ("coach", "admin")


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class InvitationRepository:
    def create(self, session: Session, email: str, coach_id: int) -> InvitationModel:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email required")
        coach = users.get(session, coach_id)
        if coach.role not in INVITING_ROLES:
            raise AuthorizationError("only coaches and admins can invite players")
        invitation = InvitationModel(
            email=normalized,
            coach_id=coach.id,
            token=generate_token(),
            status="pending",
        )
        session.add(invitation)
        session.flush()
        record_audit(
            session,
            coach.id,
            "invitation_created",
            {"invitation_id": invitation.id, "email": normalized},
            actor=f"user:{coach.id}",
        )
        return invitation

    def find_pending(self, session: Session, token: str) -> InvitationModel:
        """Return the pending invitation for ``token``.

        Unknown and accepted tokens raise the same NotFoundError.
        """
        stmt = (
            select(InvitationModel)
            .options(joinedload(InvitationModel.coach))
            .where(InvitationModel.token == token, InvitationModel.status == "pending")
        )
        invitation = session.execute(stmt).scalar_one_or_none()
        if invitation is None:
            raise NotFoundError("Invitation")
        return invitation

    def find_pending_for_email(self, session: Session, email: str) -> Optional[InvitationModel]:
        stmt = (
            select(InvitationModel)
            .where(
                InvitationModel.email == normalize_email(email),
                InvitationModel.status == "pending",
            )
            .order_by(InvitationModel.created_at.desc(), InvitationModel.id.desc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def accept(self, session: Session, invitation_id: int) -> InvitationModel:
        """Mark an invitation accepted; accepting twice is a no-op."""
        invitation = session.get(InvitationModel, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation", invitation_id)
        if invitation.status == "accepted":
            return invitation
        invitation.status = "accepted"
        invitation.accepted_at = utcnow()
        session.flush()
        record_audit(
            session,
            invitation.coach_id,
            "invitation_accepted",
            {"invitation_id": invitation.id, "email": invitation.email},
        )
        return invitation

    def list_for_coach(self, session: Session, coach_id: int) -> list[InvitationModel]:
        users.get(session, coach_id)
        stmt = (
            select(InvitationModel)
            .options(joinedload(InvitationModel.coach))
            .where(InvitationModel.coach_id == coach_id)
            .order_by(InvitationModel.created_at.desc(), InvitationModel.id.desc())
        )
        return list(session.execute(stmt).scalars().all())


invitations = InvitationRepository()

__all__ = ["InvitationRepository", "generate_token", "invitations"]

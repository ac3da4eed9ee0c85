"""Coach invitations: issue, look up by token and list per coach."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .repositories.invitations import invitations
from .schemas import InvitationCreatedPayload, InvitationPayload
from .telemetry import emit_event


router = APIRouter(prefix="/api", tags=["invitations"])


class InvitationCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=1)
    coach_id: int = Field(..., alias="coachId")


@router.post("/invitations", response_model=InvitationCreatedPayload, status_code=status.HTTP_200_OK)
def create_invitation(
    payload: InvitationCreateRequest,
    session: Session = Depends(get_session_dependency),
) -> InvitationCreatedPayload:
    invitation = invitations.create(session, payload.email, payload.coach_id)
    emit_event("invitation_created", invitation_id=invitation.id, coach_id=invitation.coach_id)
    return InvitationCreatedPayload(token=invitation.token)


@router.get("/invitations/{token}", response_model=InvitationPayload)
def get_invitation(token: str, session: Session = Depends(get_session_dependency)) -> InvitationPayload:
    return InvitationPayload.model_validate(invitations.find_pending(session, token))


@router.get("/coaches/{coach_id}/invitations", response_model=List[InvitationPayload])
def list_coach_invitations(
    coach_id: int,
    session: Session = Depends(get_session_dependency),
) -> List[InvitationPayload]:
    return [InvitationPayload.model_validate(entry) for entry in invitations.list_for_coach(session, coach_id)]


__all__ = ["router"]

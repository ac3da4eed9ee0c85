"""Roster endpoints used by the coach and admin dashboards."""

from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .repositories.users import users
from .schemas import UserPayload, UserRole


router = APIRouter(prefix="/api/users", tags=["users"])


class StageAssignmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage_id: int = Field(..., alias="stageId")


@router.get("", response_model=List[UserPayload])
def list_users(
    role: Optional[UserRole] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=120),
    stage_id: Optional[int] = Query(default=None),
    sort: Optional[Literal["name_asc", "name_desc", "stage"]] = Query(default=None),
    session: Session = Depends(get_session_dependency),
) -> List[UserPayload]:
    matches = users.list(session, role=role, search=search, stage_id=stage_id, sort=sort)
    return [UserPayload.model_validate(user) for user in matches]


@router.patch("/{user_id}/stage", response_model=UserPayload)
def assign_stage(
    user_id: int,
    payload: StageAssignmentRequest,
    session: Session = Depends(get_session_dependency),
) -> UserPayload:
    return UserPayload.model_validate(users.assign_stage(session, user_id, payload.stage_id))


__all__ = ["router"]

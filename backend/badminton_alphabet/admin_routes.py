"""Administrative CRUD for the roster, stages and skills."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .repositories.audit import recent_events
from .repositories.rubric import rubric
from .repositories.users import users
from .schemas import (
    AuditEventPayload,
    SkillPayload,
    StagePayload,
    SuccessPayload,
    UserPayload,
    UserRole,
)
from .telemetry import emit_event


router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    current_stage_id: Optional[int] = Field(default=None, alias="currentStageId")


class StageCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""


class StageUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None


class _SkillFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: Optional[str] = None
    level_1: Optional[str] = None
    level_2: Optional[str] = None
    level_3: Optional[str] = None
    level_4: Optional[str] = None
    level_5: Optional[str] = None


class SkillCreateRequest(_SkillFields):
    name: str = Field(..., min_length=1, max_length=128)
    stage_id: Optional[int] = Field(default=None, alias="stageId")


class SkillUpdateRequest(_SkillFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    stage_ids: Optional[List[int]] = Field(default=None, alias="stageIds")


@router.patch("/users/{user_id}", response_model=UserPayload)
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    session: Session = Depends(get_session_dependency),
) -> UserPayload:
    changes = payload.model_dump(exclude_unset=True)
    user = users.update(session, user_id, changes)
    return UserPayload.model_validate(user)


@router.delete("/users/{user_id}", response_model=SuccessPayload)
def delete_user(user_id: int, session: Session = Depends(get_session_dependency)) -> SuccessPayload:
    users.delete(session, user_id)
    emit_event("user_deleted", user_id=user_id)
    return SuccessPayload()


@router.get("/users/{user_id}/audit", response_model=List[AuditEventPayload])
def user_audit(
    user_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    session: Session = Depends(get_session_dependency),
) -> List[AuditEventPayload]:
    users.get(session, user_id)
    return [AuditEventPayload.model_validate(event) for event in recent_events(session, user_id, limit=limit)]


@router.post("/stages", response_model=StagePayload, status_code=status.HTTP_201_CREATED)
def create_stage(payload: StageCreateRequest, session: Session = Depends(get_session_dependency)) -> StagePayload:
    stage = rubric.create_stage(session, payload.name, payload.description)
    logger.info("Created stage %s (%s)", stage.id, stage.name)
    return StagePayload.model_validate(stage)


@router.patch("/stages/{stage_id}", response_model=StagePayload)
def update_stage(
    stage_id: int,
    payload: StageUpdateRequest,
    session: Session = Depends(get_session_dependency),
) -> StagePayload:
    stage = rubric.update_stage(session, stage_id, payload.model_dump(exclude_unset=True))
    return StagePayload.model_validate(stage)


@router.delete("/stages/{stage_id}", response_model=SuccessPayload)
def delete_stage(stage_id: int, session: Session = Depends(get_session_dependency)) -> SuccessPayload:
    rubric.delete_stage(session, stage_id)
    logger.info("Deleted stage %s", stage_id)
    return SuccessPayload()


@router.post("/skills", response_model=SkillPayload, status_code=status.HTTP_201_CREATED)
def create_skill(payload: SkillCreateRequest, session: Session = Depends(get_session_dependency)) -> SkillPayload:
    data = payload.model_dump(exclude={"stage_id"})
    stage_ids = [payload.stage_id] if payload.stage_id is not None else []
    skill = rubric.create_skill(session, data, stage_ids)
    return SkillPayload.model_validate(skill)


@router.patch("/skills/{skill_id}", response_model=SkillPayload)
def update_skill(
    skill_id: int,
    payload: SkillUpdateRequest,
    session: Session = Depends(get_session_dependency),
) -> SkillPayload:
    changes = payload.model_dump(exclude_unset=True, exclude={"stage_ids"})
    skill = rubric.update_skill(session, skill_id, changes, payload.stage_ids)
    return SkillPayload.model_validate(skill)


@router.delete("/skills/{skill_id}", response_model=SuccessPayload)
def delete_skill(skill_id: int, session: Session = Depends(get_session_dependency)) -> SuccessPayload:
    rubric.delete_skill(session, skill_id)
    logger.info("Deleted skill %s", skill_id)
    return SuccessPayload()


__all__ = ["router"]

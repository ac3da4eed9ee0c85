"""Progress ledger endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .repositories.progress import progress
from .repositories.users import users
from .schemas import (
    ProgressPayload,
    ProgressStatus,
    ProgressSummaryPayload,
    StageSummaryPayload,
    SuccessPayload,
)
from .telemetry import emit_event


router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(..., alias="userId")
    skill_id: int = Field(..., alias="skillId")
    status: ProgressStatus


@router.get("/{user_id}", response_model=List[ProgressPayload])
def list_progress(user_id: int, session: Session = Depends(get_session_dependency)) -> List[ProgressPayload]:
    return [ProgressPayload.model_validate(entry) for entry in progress.list(session, user_id)]


@router.get("/{user_id}/summary", response_model=ProgressSummaryPayload)
def progress_summary(user_id: int, session: Session = Depends(get_session_dependency)) -> ProgressSummaryPayload:
    user = users.get(session, user_id)
    stages = progress.stage_summary(session, user_id)
    return ProgressSummaryPayload(
        user_id=user.id,
        current_stage_id=user.current_stage_id,
        stages=[StageSummaryPayload.model_validate(stage) for stage in stages],
    )


@router.post("", response_model=SuccessPayload)
def record_progress(
    payload: ProgressUpdateRequest,
    session: Session = Depends(get_session_dependency),
) -> SuccessPayload:
    progress.upsert(session, payload.user_id, payload.skill_id, payload.status)
    emit_event(
        "progress_recorded",
        user_id=payload.user_id,
        skill_id=payload.skill_id,
        status=payload.status,
    )
    return SuccessPayload()


__all__ = ["router"]

"""Read-only rubric endpoints: stages, skills and stage benchmarks."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .db.session import get_session_dependency
from .repositories.rubric import rubric
from .rubric import stage_benchmarks
from .schemas import RubricPayload, SkillPayload, StageBenchmarksPayload, StagePayload


router = APIRouter(prefix="/api/stages", tags=["rubric"])


@router.get("", response_model=RubricPayload)
def list_rubric(session: Session = Depends(get_session_dependency)) -> RubricPayload:
    return RubricPayload(
        stages=[StagePayload.model_validate(stage) for stage in rubric.list_stages(session)],
        skills=[SkillPayload.model_validate(skill) for skill in rubric.list_skills(session)],
    )


@router.get("/{stage_id}/benchmarks", response_model=StageBenchmarksPayload)
def get_stage_benchmarks(
    stage_id: int,
    session: Session = Depends(get_session_dependency),
) -> StageBenchmarksPayload:
    return stage_benchmarks(rubric.get_stage(session, stage_id))


__all__ = ["router"]

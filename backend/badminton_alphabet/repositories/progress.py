"""Progress ledger: the latest mastery status per (user, skill) pair."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.base import utcnow
from ..db.models import PROGRESS_STATUSES, ProgressModel
from ..errors import ConflictError, ValidationError
from ..scoring import mastered_count, stage_score
from .audit import record_audit
from .rubric import rubric
from .users import users


@dataclass(frozen=True)
class StageProgressSummary:
    stage_id: int
    name: str
    score: int
    skill_count: int
    mastered_count: int
    is_current: bool


class ProgressRepository:
    def list(self, session: Session, user_id: int) -> list[ProgressModel]:
        stmt = (
            select(ProgressModel)
            .where(ProgressModel.user_id == user_id)
            .order_by(ProgressModel.skill_id.asc())
        )
        return list(session.execute(stmt).scalars().all())

    def upsert(self, session: Session, user_id: int, skill_id: int, status: str) -> ProgressModel:
        """Insert or overwrite the row for the pair; only the latest status is kept."""
        if status not in PROGRESS_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(PROGRESS_STATUSES)}")
        users.get(session, user_id)
        rubric.get_skill(session, skill_id)

        entry = session.get(ProgressModel, (user_id, skill_id))
        if entry is None:
            entry = ProgressModel(user_id=user_id, skill_id=skill_id)
            session.add(entry)
        entry.status = status
        entry.updated_at = utcnow()
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError("Progress", "skill_id", str(skill_id)) from exc
        record_audit(session, user_id, "progress_upsert", {"skill_id": skill_id, "status": status})
        return entry

    def statuses(self, session: Session, user_id: int) -> dict[int, str]:
        return {entry.skill_id: entry.status for entry in self.list(session, user_id)}

    def stage_summary(self, session: Session, user_id: int) -> list[StageProgressSummary]:
        user = users.get(session, user_id)
        statuses = self.statuses(session, user_id)
        stages = {stage.id: stage for stage in rubric.list_stages(session)}
        summaries: list[StageProgressSummary] = []
        for stage_id, skill_ids in rubric.stage_skill_ids(session).items():
            stage = stages[stage_id]
            summaries.append(
                StageProgressSummary(
                    stage_id=stage_id,
                    name=stage.name,
                    score=stage_score(skill_ids, statuses),
                    skill_count=len(skill_ids),
                    mastered_count=mastered_count(skill_ids, statuses),
                    is_current=user.current_stage_id == stage_id,
                )
            )
        return summaries


progress = ProgressRepository()

__all__ = ["ProgressRepository", "StageProgressSummary", "progress"]

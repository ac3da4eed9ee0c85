"""Stages, skills and the stage-skill association."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db.models import SkillModel, StageModel, StageSkillModel
from ..errors import NotFoundError, ValidationError

SKILL_FIELDS = ("name", "description", "level_1", "level_2", "level_3", "level_4", "level_5")
STAGE_FIELDS = ("name", "description")


class RubricRepository:
    def list_stages(self, session: Session) -> list[StageModel]:
        stmt = select(StageModel).order_by(StageModel.id.asc())
        return list(session.execute(stmt).scalars().all())

    def list_skills(self, session: Session) -> list[SkillModel]:
        stmt = (
            select(SkillModel)
            .options(selectinload(SkillModel.stage_links))
            .order_by(SkillModel.id.asc())
        )
        return list(session.execute(stmt).scalars().all())

    def skills_for_stage(self, session: Session, stage_id: int) -> list[SkillModel]:
        stmt = (
            select(SkillModel)
            .join(StageSkillModel, StageSkillModel.skill_id == SkillModel.id)
            .where(StageSkillModel.stage_id == stage_id)
            .order_by(SkillModel.id.asc())
        )
        return list(session.execute(stmt).scalars().all())

    def stage_skill_ids(self, session: Session) -> Dict[int, list[int]]:
        """Map every stage id to its linked skill ids, including empty stages."""
        mapping: Dict[int, list[int]] = {stage.id: [] for stage in self.list_stages(session)}
        stmt = select(StageSkillModel).order_by(StageSkillModel.stage_id, StageSkillModel.skill_id)
        for link in session.execute(stmt).scalars():
            mapping.setdefault(link.stage_id, []).append(link.skill_id)
        return mapping

    def first_stage_id(self, session: Session) -> Optional[int]:
        stmt = select(StageModel.id).order_by(StageModel.id.asc()).limit(1)
        return session.execute(stmt).scalar_one_or_none()

    def get_stage(self, session: Session, stage_id: int) -> StageModel:
        stage = session.get(StageModel, stage_id)
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        return stage

    def find_stage_by_name(self, session: Session, name: str) -> Optional[StageModel]:
        stmt = select(StageModel).where(StageModel.name == name).order_by(StageModel.id).limit(1)
        return session.execute(stmt).scalar_one_or_none()

    def create_stage(self, session: Session, name: str, description: str = "") -> StageModel:
        stage = StageModel(name=_require_text(name, "name"), description=description or "")
        session.add(stage)
        session.flush()
        return stage

    def update_stage(self, session: Session, stage_id: int, changes: Dict[str, Any]) -> StageModel:
        stage = self.get_stage(session, stage_id)
        for key in STAGE_FIELDS:
            if key in changes and changes[key] is not None:
                value = changes[key]
                setattr(stage, key, _require_text(value, key) if key == "name" else value)
        session.flush()
        return stage

    def delete_stage(self, session: Session, stage_id: int) -> None:
        stage = self.get_stage(session, stage_id)
        session.delete(stage)
        session.flush()

    def get_skill(self, session: Session, skill_id: int) -> SkillModel:
        skill = session.get(SkillModel, skill_id)
        if skill is None:
            raise NotFoundError("Skill", skill_id)
        return skill

    def find_skill_by_name(self, session: Session, name: str) -> Optional[SkillModel]:
        stmt = select(SkillModel).where(SkillModel.name == name).order_by(SkillModel.id).limit(1)
        return session.execute(stmt).scalar_one_or_none()

    def create_skill(
        self,
        session: Session,
        data: Dict[str, Any],
        stage_ids: Iterable[int] = (),
    ) -> SkillModel:
        values = {key: data.get(key) or "" for key in SKILL_FIELDS}
        values["name"] = _require_text(values["name"], "name")
        skill = SkillModel(**values)
        session.add(skill)
        session.flush()
        self._replace_links(session, skill, stage_ids)
        return skill

    def update_skill(
        self,
        session: Session,
        skill_id: int,
        changes: Dict[str, Any],
        stage_ids: Optional[Iterable[int]] = None,
    ) -> SkillModel:
        skill = self.get_skill(session, skill_id)
        for key in SKILL_FIELDS:
            if key in changes and changes[key] is not None:
                value = changes[key]
                setattr(skill, key, _require_text(value, key) if key == "name" else value)
        if stage_ids is not None:
            self._replace_links(session, skill, stage_ids)
        session.flush()
        return skill

    def delete_skill(self, session: Session, skill_id: int) -> None:
        skill = self.get_skill(session, skill_id)
        session.delete(skill)
        session.flush()

    def link(self, session: Session, stage_id: int, skill_id: int) -> bool:
        """Attach a skill to a stage; returns False when the pair already exists."""
        if session.get(StageSkillModel, (stage_id, skill_id)) is not None:
            return False
        stage = self.get_stage(session, stage_id)
        skill = self.get_skill(session, skill_id)
        session.add(StageSkillModel(stage=stage, skill=skill))
        session.flush()
        return True

    def _replace_links(self, session: Session, skill: SkillModel, stage_ids: Iterable[int]) -> None:
        wanted = sorted(set(stage_ids))
        for stage_id in wanted:
            self.get_stage(session, stage_id)
        current = {link.stage_id: link for link in skill.stage_links}
        for stage_id, link in current.items():
            if stage_id not in wanted:
                skill.stage_links.remove(link)
        for stage_id in wanted:
            if stage_id not in current:
                skill.stage_links.append(StageSkillModel(stage_id=stage_id, skill_id=skill.id))
        session.flush()


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} required")
    return value.strip()


rubric = RubricRepository()

__all__ = ["RubricRepository", "SKILL_FIELDS", "rubric"]

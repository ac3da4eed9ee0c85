"""Bundled Badminton Alphabet rubric: seed data and per-stage benchmark sheets."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from .db.models import SkillModel, StageModel
from .repositories.rubric import rubric
from .schemas import BenchmarkItemPayload, StageBenchmarksPayload
from .telemetry import emit_event

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
RUBRIC_PATH = DATA_DIR / "rubric.json"
LEVEL_COUNT = 5


class BenchmarkItem(BaseModel):
    category: str
    details: str


class StageDefinition(BaseModel):
    name: str
    description: str = ""
    identity: Optional[str] = None
    focus: List[str] = Field(default_factory=list)
    benchmarks: List[BenchmarkItem] = Field(default_factory=list)


class SkillDefinition(BaseModel):
    letter: str = Field(..., min_length=1, max_length=1)
    name: str
    description: str = ""
    levels: List[str]

    @field_validator("levels")
    @classmethod
    def _five_levels(cls, value: List[str]) -> List[str]:
        if len(value) != LEVEL_COUNT:
            raise ValueError(f"expected {LEVEL_COUNT} level descriptions, got {len(value)}")
        return value

    def columns(self) -> Dict[str, str]:
        values = {"name": self.name, "description": self.description}
        for index, text in enumerate(self.levels, start=1):
            values[f"level_{index}"] = text
        return values


class RubricDefinition(BaseModel):
    stages: List[StageDefinition]
    skills: List[SkillDefinition]

    def skill_by_letter(self) -> Dict[str, SkillDefinition]:
        return {skill.letter.upper(): skill for skill in self.skills}

    def stage_named(self, name: str) -> Optional[StageDefinition]:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None


@dataclass(frozen=True)
class SeedReport:
    stages_created: int
    skills_created: int
    links_created: int

    @property
    def changed(self) -> bool:
        return bool(self.stages_created or self.skills_created or self.links_created)


def load_rubric(path: Optional[Path] = None) -> RubricDefinition:
    source = path or RUBRIC_PATH
    if source == RUBRIC_PATH:
        return _bundled_rubric()
    return _read_rubric(source)


@lru_cache(maxsize=1)
def _bundled_rubric() -> RubricDefinition:
    return _read_rubric(RUBRIC_PATH)


def _read_rubric(path: Path) -> RubricDefinition:
    with path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    return RubricDefinition.model_validate(raw)


def seed_rubric(session: Session, definition: Optional[RubricDefinition] = None) -> SeedReport:
    """Insert the missing stages, skills and links; existing rows are matched by name.

    Running it twice leaves the store unchanged the second time. Rows edited by
    admins keep their edits as long as the name is unchanged.
    """
    definition = definition or load_rubric()
    stages_created = skills_created = links_created = 0

    stage_rows: Dict[str, StageModel] = {}
    for stage_def in definition.stages:
        stage = rubric.find_stage_by_name(session, stage_def.name)
        if stage is None:
            stage = rubric.create_stage(session, stage_def.name, stage_def.description)
            stages_created += 1
        stage_rows[stage_def.name] = stage

    skill_rows: Dict[str, SkillModel] = {}
    for letter, skill_def in definition.skill_by_letter().items():
        skill = rubric.find_skill_by_name(session, skill_def.name)
        if skill is None:
            skill = rubric.create_skill(session, skill_def.columns())
            skills_created += 1
        skill_rows[letter] = skill

    for stage_def in definition.stages:
        stage = stage_rows[stage_def.name]
        for letter in stage_def.focus:
            skill = skill_rows.get(letter.upper())
            if skill is None:
                logger.warning("Stage %s references unknown skill letter %s", stage_def.name, letter)
                continue
            if rubric.link(session, stage.id, skill.id):
                links_created += 1

    report = SeedReport(stages_created, skills_created, links_created)
    emit_event(
        "rubric_seeded",
        stages_created=report.stages_created,
        skills_created=report.skills_created,
        links_created=report.links_created,
    )
    return report


def stage_benchmarks(stage: StageModel, definition: Optional[RubricDefinition] = None) -> StageBenchmarksPayload:
    """Benchmark sheet for a stage; admin-created stages have no items."""
    definition = definition or load_rubric()
    stage_def = definition.stage_named(stage.name)
    if stage_def is None:
        return StageBenchmarksPayload(stage_id=stage.id, name=stage.name)
    return StageBenchmarksPayload(
        stage_id=stage.id,
        name=stage.name,
        identity=stage_def.identity,
        focus=list(stage_def.focus),
        benchmarks=[
            BenchmarkItemPayload(category=item.category, details=item.details)
            for item in stage_def.benchmarks
        ],
    )


__all__ = [
    "RubricDefinition",
    "SeedReport",
    "load_rubric",
    "seed_rubric",
    "stage_benchmarks",
]

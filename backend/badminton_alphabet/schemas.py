"""Pydantic payloads returned by the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ProgressStatus = Literal["not_started", "level_1", "level_2", "level_3", "level_4", "level_5"]
UserRole = Literal["admin", "coach", "player"]


class _OrmPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserPayload(_OrmPayload):
    """Public view of a user; the password hash is never part of it."""

    id: int
    external_identity_id: Optional[str] = None
    name: str
    email: str
    role: UserRole
    current_stage_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StagePayload(_OrmPayload):
    id: int
    name: str
    description: str = ""


class SkillPayload(_OrmPayload):
    id: int
    name: str
    description: str = ""
    level_1: str = ""
    level_2: str = ""
    level_3: str = ""
    level_4: str = ""
    level_5: str = ""
    stage_ids: List[int] = Field(default_factory=list)
    stage_id: Optional[int] = None


class RubricPayload(BaseModel):
    stages: List[StagePayload] = Field(default_factory=list)
    skills: List[SkillPayload] = Field(default_factory=list)


class BenchmarkItemPayload(BaseModel):
    category: str
    details: str


class StageBenchmarksPayload(BaseModel):
    stage_id: int
    name: str
    identity: Optional[str] = None
    focus: List[str] = Field(default_factory=list)
    benchmarks: List[BenchmarkItemPayload] = Field(default_factory=list)


class InvitationPayload(_OrmPayload):
    id: int
    email: str
    coach_id: int
    coach_name: Optional[str] = None
    token: str
    status: Literal["pending", "accepted"]
    created_at: datetime
    accepted_at: Optional[datetime] = None


class InvitationCreatedPayload(BaseModel):
    success: bool = True
    token: str


class ProgressPayload(_OrmPayload):
    user_id: int
    skill_id: int
    status: ProgressStatus
    updated_at: datetime


class StageSummaryPayload(_OrmPayload):
    stage_id: int
    name: str
    score: int
    skill_count: int
    mastered_count: int
    is_current: bool


class ProgressSummaryPayload(BaseModel):
    user_id: int
    current_stage_id: Optional[int] = None
    stages: List[StageSummaryPayload] = Field(default_factory=list)


class AuditEventPayload(_OrmPayload):
    id: int
    user_id: Optional[int] = None
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    actor: Optional[str] = None
    created_at: datetime


class SuccessPayload(BaseModel):
    success: bool = True


__all__ = [
    "AuditEventPayload",
    "BenchmarkItemPayload",
    "InvitationCreatedPayload",
    "InvitationPayload",
    "ProgressPayload",
    "ProgressStatus",
    "ProgressSummaryPayload",
    "RubricPayload",
    "SkillPayload",
    "StageBenchmarksPayload",
    "StagePayload",
    "StageSummaryPayload",
    "SuccessPayload",
    "UserPayload",
    "UserRole",
]

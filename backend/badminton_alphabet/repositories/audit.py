"""Append-only audit trail written alongside identity and ledger mutations."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import AuditEventModel


def record_audit(
    session: Session,
    user_id: Optional[int],
    event_type: str,
    payload: Dict[str, Any],
    *,
    actor: str = "system",
) -> None:
    session.add(
        AuditEventModel(
            user_id=user_id,
            event_type=event_type,
            payload=payload,
            actor=actor,
        )
    )


def recent_events(session: Session, user_id: int, *, limit: int = 50) -> list[AuditEventModel]:
    stmt = (
        select(AuditEventModel)
        .where(AuditEventModel.user_id == user_id)
        .order_by(AuditEventModel.created_at.desc(), AuditEventModel.id.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


__all__ = ["recent_events", "record_audit"]

"""Stage completion scoring derived from progress statuses."""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Optional

MAX_LEVEL = 5
MASTERED_STATUS = "level_5"

LEVEL_VALUES: dict[str, int] = {
    "not_started": 0,
    "level_1": 1,
    "level_2": 2,
    "level_3": 3,
    "level_4": 4,
    "level_5": 5,
}


def level_value(status: Optional[str]) -> int:
    """Numeric value of a status; missing or unknown statuses count as not started."""
    if status is None:
        return 0
    return LEVEL_VALUES.get(status, 0)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def stage_score(skill_ids: Iterable[int], statuses: Mapping[int, str]) -> int:
    """Percentage of available points earned across the skills of one stage.

    ``statuses`` maps skill id to status; skills without an entry score zero.
    An empty stage scores 0.
    """
    ids = list(dict.fromkeys(skill_ids))
    if not ids:
        return 0
    earned = sum(level_value(statuses.get(skill_id)) for skill_id in ids)
    return round_half_up(100 * earned / (MAX_LEVEL * len(ids)))


def mastered_count(skill_ids: Iterable[int], statuses: Mapping[int, str]) -> int:
    return sum(1 for skill_id in set(skill_ids) if statuses.get(skill_id) == MASTERED_STATUS)


__all__ = [
    "LEVEL_VALUES",
    "MASTERED_STATUS",
    "level_value",
    "mastered_count",
    "round_half_up",
    "stage_score",
]

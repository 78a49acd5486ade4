from __future__ import annotations

import logging
from typing import Iterable

from rules.abilities import MAX_LEVEL, MIN_LEVEL, proficiency_bonus_for
from rules.schemas import ClassLevel

logger = logging.getLogger(__name__)


def total_level(classes: Iterable[ClassLevel]) -> int:
    return sum(entry.level for entry in classes)


def class_level_map(classes: Iterable[ClassLevel]) -> dict[str, int]:
    # A repeated class name keeps the level of its last entry.
    levels: dict[str, int] = {}
    for entry in classes:
        levels[entry.name] = entry.level
    return levels


def proficiency_bonus(classes: Iterable[ClassLevel]) -> int:
    level = total_level(classes)
    if level < MIN_LEVEL or level > MAX_LEVEL:
        logger.warning(
            "Total level %s is outside %s..%s; using nearest proficiency band",
            level,
            MIN_LEVEL,
            MAX_LEVEL,
        )
    return proficiency_bonus_for(level)

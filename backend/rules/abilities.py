from __future__ import annotations

ABILITY_NAMES = (
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
)

MIN_LEVEL = 1
MAX_LEVEL = 20

# (highest total level in band, proficiency bonus)
PROFICIENCY_BANDS = (
    (4, 2),
    (8, 3),
    (12, 4),
    (16, 5),
    (20, 6),
)


def modifier_for(score: int) -> int:
    """Ability modifier for a score in 1..30.

    Range checking belongs to the payload validator; scores outside 1..30
    still produce the arithmetic result.
    """
    return (score - 10) // 2


def proficiency_bonus_for(total_level: int) -> int:
    level = min(max(total_level, MIN_LEVEL), MAX_LEVEL)
    for ceiling, bonus in PROFICIENCY_BANDS:
        if level <= ceiling:
            return bonus
    return PROFICIENCY_BANDS[-1][1]


def bonus_for(modifier: int, proficiency_bonus: int, proficient: bool) -> int:
    return modifier + (proficiency_bonus if proficient else 0)


def signed_string(value: int) -> str:
    if value >= 0:
        return f"+{value}"
    return str(value)

from __future__ import annotations

from rules.abilities import ABILITY_NAMES, bonus_for, modifier_for
from rules.multiclass import class_level_map, proficiency_bonus, total_level
from rules.schemas import (
    Character,
    CharacterSummary,
    DerivedStats,
    HitPoints,
    LifeStatus,
    ProficientBonus,
)

SKILL_ABILITIES = {
    "acrobatics": "dexterity",
    "animal_handling": "wisdom",
    "arcana": "intelligence",
    "athletics": "strength",
    "deception": "charisma",
    "history": "intelligence",
    "insight": "wisdom",
    "intimidation": "charisma",
    "investigation": "intelligence",
    "medicine": "wisdom",
    "nature": "intelligence",
    "perception": "wisdom",
    "performance": "charisma",
    "persuasion": "charisma",
    "religion": "intelligence",
    "sleight_of_hand": "dexterity",
    "stealth": "dexterity",
    "survival": "wisdom",
}


def derive_stats(character: Character) -> DerivedStats:
    modifiers = ability_modifiers(character)
    prof_bonus = proficiency_bonus(character.classes)
    hit_points = character.hit_points

    return DerivedStats(
        ability_modifiers=modifiers,
        saving_throws=_saving_throws(character, modifiers, prof_bonus),
        skills=_skills(character, modifiers, prof_bonus),
        total_level=total_level(character.classes),
        class_levels=class_level_map(character.classes),
        proficiency_bonus=prof_bonus,
        initiative_modifier=modifiers["dexterity"],
        armor_class=character.armor_class,
        maximum_hit_points=hit_points.maximum,
        effective_hit_points=hit_points.current + hit_points.temporary,
        life_status=life_status(hit_points),
    )


def ability_modifiers(character: Character) -> dict[str, int]:
    scores = character.ability_scores
    return {name: modifier_for(getattr(scores, name)) for name in ABILITY_NAMES}


def governing_ability(skill: str) -> str | None:
    return SKILL_ABILITIES.get(_normalize_skill(skill))


def life_status(hit_points: HitPoints) -> LifeStatus:
    if hit_points.maximum == 0:
        return "dead"
    if hit_points.current <= 0:
        return "unconscious"
    return "alive"


def _saving_throws(
    character: Character,
    modifiers: dict[str, int],
    prof_bonus: int,
) -> dict[str, ProficientBonus]:
    saves: dict[str, ProficientBonus] = {}
    for name in ABILITY_NAMES:
        proficient = bool(getattr(character.saving_throws, name))
        saves[name] = ProficientBonus(
            bonus=bonus_for(modifiers[name], prof_bonus, proficient),
            proficient=proficient,
        )
    return saves


def _skills(
    character: Character,
    modifiers: dict[str, int],
    prof_bonus: int,
) -> dict[str, ProficientBonus]:
    skills: dict[str, ProficientBonus] = {}
    for skill, proficient in character.skills.items():
        ability = governing_ability(skill)
        # Skills missing from the table are ungoverned and add no modifier.
        modifier = modifiers[ability] if ability else 0
        skills[skill] = ProficientBonus(
            bonus=bonus_for(modifier, prof_bonus, proficient),
            proficient=proficient,
        )
    return skills


def _normalize_skill(skill: str) -> str:
    return skill.strip().lower().replace(" ", "_").replace("-", "_")


def take_damage(hit_points: HitPoints, damage: int) -> HitPoints:
    if damage <= 0:
        return hit_points.model_copy()

    temporary = hit_points.temporary
    current = hit_points.current
    if temporary > 0:
        absorbed = min(damage, temporary)
        temporary -= absorbed
        damage -= absorbed
    if damage > 0:
        current = max(0, current - damage)
    return hit_points.model_copy(update={"current": current, "temporary": temporary})


def heal(hit_points: HitPoints, healing: int) -> HitPoints:
    if healing <= 0:
        return hit_points.model_copy()
    current = min(hit_points.maximum, hit_points.current + healing)
    return hit_points.model_copy(update={"current": current})


def add_temporary_hp(hit_points: HitPoints, amount: int) -> HitPoints:
    if amount <= 0:
        return hit_points.model_copy()
    # Temporary hit points never stack.
    temporary = max(hit_points.temporary, amount)
    return hit_points.model_copy(update={"temporary": temporary})


def summarize(character: Character) -> CharacterSummary:
    return CharacterSummary(
        id=character.id,
        name=character.name,
        race=character.race,
        type=character.type,
        level=total_level(character.classes),
        classes=[entry.model_copy() for entry in character.classes],
        hit_points=character.hit_points.model_copy(),
        armor_class=character.armor_class,
        is_public=character.is_public,
    )

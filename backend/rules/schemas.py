from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

AbilityName = Literal[
    "strength",
    "dexterity",
    "constitution",
    "intelligence",
    "wisdom",
    "charisma",
]
LifeStatus = Literal["alive", "unconscious", "dead"]


class AbilityScores(BaseModel):
    model_config = ConfigDict(extra="forbid")

    strength: int = Field(default=10, ge=1, le=30)
    dexterity: int = Field(default=10, ge=1, le=30)
    constitution: int = Field(default=10, ge=1, le=30)
    intelligence: int = Field(default=10, ge=1, le=30)
    wisdom: int = Field(default=10, ge=1, le=30)
    charisma: int = Field(default=10, ge=1, le=30)


class ClassLevel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    level: int = Field(ge=1, le=20)
    subclass: str | None = None
    hit_die: int = Field(default=8, ge=4, le=12)


class HitPoints(BaseModel):
    model_config = ConfigDict(extra="forbid")

    maximum: int = Field(ge=0)
    current: int
    temporary: int = Field(default=0, ge=0)


class SavingThrowProficiencies(BaseModel):
    model_config = ConfigDict(extra="forbid")

    strength: bool = False
    dexterity: bool = False
    constitution: bool = False
    intelligence: bool = False
    wisdom: bool = False
    charisma: bool = False


class EquipmentItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    quantity: int = Field(default=1, ge=0)
    weight: float = Field(default=0, ge=0)
    value: float = Field(default=0, ge=0)
    description: str | None = None
    equipped: bool = False
    magical: bool = False


class Character(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    owner_id: str
    name: str = Field(min_length=1, max_length=100)
    type: Literal["pc", "npc"] = "pc"
    race: str = ""
    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    classes: list[ClassLevel] = Field(min_length=1, max_length=3)
    hit_points: HitPoints
    armor_class: int = Field(default=10, ge=1, le=30)
    speed: int = Field(default=30, ge=0)
    saving_throws: SavingThrowProficiencies = Field(
        default_factory=SavingThrowProficiencies
    )
    skills: dict[str, bool] = Field(default_factory=dict)
    equipment: list[EquipmentItem] = Field(default_factory=list)
    backstory: str = Field(default="", max_length=5000)
    notes: str = Field(default="", max_length=2000)
    is_public: bool = False


class ProficientBonus(BaseModel):
    model_config = ConfigDict(frozen=True)

    bonus: int
    proficient: bool


class DerivedStats(BaseModel):
    """Combat numbers recomputed from a Character; never persisted."""

    model_config = ConfigDict(frozen=True)

    ability_modifiers: dict[str, int]
    saving_throws: dict[str, ProficientBonus]
    skills: dict[str, ProficientBonus]
    total_level: int
    class_levels: dict[str, int]
    proficiency_bonus: int
    initiative_modifier: int
    armor_class: int
    maximum_hit_points: int
    effective_hit_points: int
    life_status: LifeStatus

    @computed_field
    @property
    def is_alive(self) -> bool:
        return self.life_status == "alive"

    @computed_field
    @property
    def is_unconscious(self) -> bool:
        return self.life_status == "unconscious"


class CharacterSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None
    name: str
    race: str
    type: Literal["pc", "npc"]
    level: int
    classes: list[ClassLevel]
    hit_points: HitPoints
    armor_class: int
    is_public: bool

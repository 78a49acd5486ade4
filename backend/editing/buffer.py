from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from rules.schemas import Character


class AbilityScorePatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    strength: int | None = Field(default=None, ge=1, le=30)
    dexterity: int | None = Field(default=None, ge=1, le=30)
    constitution: int | None = Field(default=None, ge=1, le=30)
    intelligence: int | None = Field(default=None, ge=1, le=30)
    wisdom: int | None = Field(default=None, ge=1, le=30)
    charisma: int | None = Field(default=None, ge=1, le=30)


class EditBuffer(BaseModel):
    """Fields a user may change from the character sheet view."""

    model_config = ConfigDict(extra="forbid")

    ability_scores: AbilityScorePatch | None = None
    backstory: str | None = Field(default=None, max_length=5000)
    notes: str | None = Field(default=None, max_length=2000)

    def is_empty(self) -> bool:
        scores = self.ability_scores.model_dump(exclude_none=True) if self.ability_scores else {}
        return not scores and self.backstory is None and self.notes is None


class Draft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    character_id: int
    user_id: str
    changes: EditBuffer = Field(default_factory=EditBuffer)
    updated_at: datetime | None = None

    def is_empty(self) -> bool:
        return self.changes.is_empty()


def seed_buffer(character: Character) -> EditBuffer:
    return EditBuffer(
        ability_scores=AbilityScorePatch(**character.ability_scores.model_dump()),
        backstory=character.backstory,
        notes=character.notes,
    )


def merge_buffer(character: Character, buffer: EditBuffer) -> Character:
    update: dict = {}
    if buffer.ability_scores is not None:
        scores = buffer.ability_scores.model_dump(exclude_none=True)
        update["ability_scores"] = character.ability_scores.model_copy(update=scores)
    if buffer.backstory is not None:
        update["backstory"] = buffer.backstory
    if buffer.notes is not None:
        update["notes"] = buffer.notes
    return character.model_copy(update=update, deep=True)

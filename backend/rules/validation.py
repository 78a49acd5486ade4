from __future__ import annotations

from typing import Any, Iterable

import pydantic

from rules.abilities import MAX_LEVEL
from rules.schemas import Character, ClassLevel


class ValidationError(ValueError):
    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})


def _field_path(location: Iterable[Any]) -> str:
    return ".".join(str(part) for part in location)


def validate_classes(classes: Iterable[ClassLevel]) -> None:
    entries = list(classes)
    if not entries:
        raise ValidationError(
            "A character needs at least one class.",
            {"classes": "At least one class is required."},
        )
    total = sum(entry.level for entry in entries)
    if total > MAX_LEVEL:
        raise ValidationError(
            f"Total character level {total} exceeds {MAX_LEVEL}.",
            {"classes": f"Total level must not exceed {MAX_LEVEL}."},
        )


def validate_character_payload(payload: dict[str, Any]) -> Character:
    try:
        character = Character.model_validate(payload)
    except pydantic.ValidationError as exc:
        fields = {
            _field_path(error["loc"]): error["msg"] for error in exc.errors()
        }
        raise ValidationError("Character data validation failed.", fields) from exc
    validate_classes(character.classes)
    return character

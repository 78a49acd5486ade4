from __future__ import annotations

import asyncio
import logging
from typing import Callable

import pydantic
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import SessionLocal
from editing.buffer import Draft, EditBuffer
from editing.gateways import (
    CHARACTER_NOT_FOUND,
    DATABASE_ERROR,
    OPERATION_FAILED,
    Result,
)
from models import Character as CharacterRecord, CharacterDraft
from rules.schemas import Character

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def character_from_record(record: CharacterRecord) -> Character:
    return Character.model_validate(
        {
            "id": record.id,
            "owner_id": record.owner_id,
            "name": record.name,
            "type": record.type,
            "race": record.race or "",
            "ability_scores": record.ability_scores_json or {},
            "classes": record.classes_json or [],
            "hit_points": record.hit_points_json or {},
            "armor_class": record.armor_class,
            "speed": record.speed,
            "saving_throws": record.saving_throws_json or {},
            "skills": record.skills_json or {},
            "equipment": record.equipment_json or [],
            "backstory": record.backstory or "",
            "notes": record.notes or "",
            "is_public": bool(record.is_public),
        }
    )


def create_character_record(db: Session, character: Character) -> CharacterRecord:
    record = CharacterRecord(
        owner_id=character.owner_id,
        name=character.name,
        type=character.type,
        race=character.race,
        ability_scores_json=character.ability_scores.model_dump(),
        classes_json=[entry.model_dump() for entry in character.classes],
        hit_points_json=character.hit_points.model_dump(),
        armor_class=character.armor_class,
        speed=character.speed,
        saving_throws_json=character.saving_throws.model_dump(),
        skills_json=dict(character.skills),
        equipment_json=[item.model_dump() for item in character.equipment],
        backstory=character.backstory,
        notes=character.notes,
        is_public=character.is_public,
    )
    db.add(record)
    db.flush()
    return record


def apply_edit_buffer(record: CharacterRecord, patch: EditBuffer) -> None:
    if patch.ability_scores is not None:
        scores = dict(record.ability_scores_json or {})
        scores.update(patch.ability_scores.model_dump(exclude_none=True))
        record.ability_scores_json = scores
    if patch.backstory is not None:
        record.backstory = patch.backstory
    if patch.notes is not None:
        record.notes = patch.notes


class SqlCharacterGateway:
    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def get_character(self, character_id: int, user_id: str) -> Result[Character]:
        return await asyncio.to_thread(self._get_character, character_id, user_id)

    async def update_character(
        self,
        character_id: int,
        user_id: str,
        patch: EditBuffer,
    ) -> Result[Character]:
        return await asyncio.to_thread(self._update_character, character_id, user_id, patch)

    def _get_character(self, character_id: int, user_id: str) -> Result[Character]:
        try:
            with self._session_factory() as db:
                record = (
                    db.query(CharacterRecord)
                    .filter(
                        CharacterRecord.id == character_id,
                        or_(
                            CharacterRecord.owner_id == user_id,
                            CharacterRecord.is_public.is_(True),
                        ),
                    )
                    .first()
                )
                if record is None:
                    return _not_found(character_id)
                return Result.success(character_from_record(record))
        except SQLAlchemyError:
            logger.exception("Loading character %s failed", character_id)
            return Result.failure(DATABASE_ERROR, "Failed to load character")

    def _update_character(
        self,
        character_id: int,
        user_id: str,
        patch: EditBuffer,
    ) -> Result[Character]:
        try:
            with self._session_factory() as db:
                record = (
                    db.query(CharacterRecord)
                    .filter(
                        CharacterRecord.id == character_id,
                        CharacterRecord.owner_id == user_id,
                    )
                    .first()
                )
                if record is None:
                    return _not_found(character_id)
                apply_edit_buffer(record, patch)
                try:
                    character = character_from_record(record)
                except pydantic.ValidationError as exc:
                    db.rollback()
                    return Result.failure(OPERATION_FAILED, _first_error(exc))
                db.commit()
                return Result.success(character)
        except SQLAlchemyError:
            logger.exception("Updating character %s failed", character_id)
            return Result.failure(DATABASE_ERROR, "Failed to save changes")


class SqlDraftGateway:
    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def save_draft(
        self,
        character_id: int,
        user_id: str,
        patch: EditBuffer,
    ) -> Result[Draft]:
        return await asyncio.to_thread(self._save_draft, character_id, user_id, patch)

    async def get_draft(self, character_id: int, user_id: str) -> Result[Draft | None]:
        return await asyncio.to_thread(self._get_draft, character_id, user_id)

    async def clear_draft(self, character_id: int, user_id: str) -> Result[None]:
        return await asyncio.to_thread(self._clear_draft, character_id, user_id)

    def _save_draft(self, character_id: int, user_id: str, patch: EditBuffer) -> Result[Draft]:
        try:
            changes = EditBuffer.model_validate(patch.model_dump())
        except pydantic.ValidationError as exc:
            return Result.failure(OPERATION_FAILED, _first_error(exc))

        try:
            with self._session_factory() as db:
                exists = (
                    db.query(CharacterRecord.id)
                    .filter(
                        CharacterRecord.id == character_id,
                        CharacterRecord.owner_id == user_id,
                    )
                    .first()
                )
                if exists is None:
                    return _not_found(character_id)
                record = _find_draft(db, character_id, user_id)
                if record is None:
                    record = CharacterDraft(character_id=character_id, user_id=user_id)
                    db.add(record)
                # Concurrent editors of the same key overwrite each other.
                record.changes_json = changes.model_dump(exclude_none=True)
                db.commit()
                db.refresh(record)
                return Result.success(_draft_from_record(record))
        except SQLAlchemyError:
            logger.exception("Saving draft for character %s failed", character_id)
            return Result.failure(DATABASE_ERROR, "Failed to save draft")

    def _get_draft(self, character_id: int, user_id: str) -> Result[Draft | None]:
        try:
            with self._session_factory() as db:
                record = _find_draft(db, character_id, user_id)
                if record is None:
                    return Result.success(None)
                try:
                    return Result.success(_draft_from_record(record))
                except pydantic.ValidationError as exc:
                    return Result.failure(OPERATION_FAILED, _first_error(exc))
        except SQLAlchemyError:
            logger.exception("Loading draft for character %s failed", character_id)
            return Result.failure(DATABASE_ERROR, "Failed to load draft")

    def _clear_draft(self, character_id: int, user_id: str) -> Result[None]:
        try:
            with self._session_factory() as db:
                record = _find_draft(db, character_id, user_id)
                if record is not None:
                    db.delete(record)
                    db.commit()
                return Result.success(None)
        except SQLAlchemyError:
            logger.exception("Clearing draft for character %s failed", character_id)
            return Result.failure(DATABASE_ERROR, "Failed to clear draft")


def _find_draft(db: Session, character_id: int, user_id: str) -> CharacterDraft | None:
    return (
        db.query(CharacterDraft)
        .filter(
            CharacterDraft.character_id == character_id,
            CharacterDraft.user_id == user_id,
        )
        .first()
    )


def _draft_from_record(record: CharacterDraft) -> Draft:
    return Draft(
        character_id=record.character_id,
        user_id=record.user_id,
        changes=EditBuffer.model_validate(record.changes_json or {}),
        updated_at=record.updated_at,
    )


def _not_found(character_id: int) -> Result:
    return Result.failure(CHARACTER_NOT_FOUND, f'Character with ID "{character_id}" not found')


def _first_error(exc: pydantic.ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Character data validation failed"
    first = errors[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"

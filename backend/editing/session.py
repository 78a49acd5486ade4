from __future__ import annotations

import logging
from enum import Enum

from config import settings
from editing.autosave import AutosaveController
from editing.buffer import AbilityScorePatch, EditBuffer, merge_buffer, seed_buffer
from editing.gateways import CharacterGateway, DraftGateway
from editing.scheduler import LoopScheduler, Scheduler, TimerHandle
from rules.abilities import ABILITY_NAMES
from rules.schemas import AbilityName, Character, DerivedStats
from rules.stats import derive_stats

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class EditSessionError(RuntimeError):
    pass


class CharacterEditSession:
    """View/edit state for one character sheet.

    Owns the edit buffer, keeps a live stats preview of it and feeds every
    change to the autosave controller. Only a failed explicit save is
    reported back to the caller, through ``error``.
    """

    def __init__(
        self,
        character: Character,
        user_id: str,
        characters: CharacterGateway,
        drafts: DraftGateway,
        *,
        scheduler: Scheduler | None = None,
        autosave: AutosaveController | None = None,
    ) -> None:
        if character.id is None:
            raise EditSessionError("Only stored characters can be edited.")
        self.character = character
        self.user_id = user_id
        self._characters = characters
        self._scheduler = scheduler or LoopScheduler()
        self.autosave = autosave or AutosaveController(
            drafts,
            character.id,
            user_id,
            scheduler=self._scheduler,
        )
        self.save_notice_seconds = settings.save_notice_seconds
        self.mode = SessionMode.VIEWING
        self.buffer: EditBuffer | None = None
        self.error: str | None = None
        self.saving = False
        self.save_succeeded = False
        self.preview: DerivedStats = derive_stats(character)
        self._save_notice: TimerHandle | None = None

    @property
    def character_id(self) -> int:
        return self.character.id

    @property
    def editing(self) -> bool:
        return self.mode is SessionMode.EDITING

    async def start_editing(self) -> None:
        if self.editing:
            return
        self._clear_save_notice()
        self.buffer = seed_buffer(self.character)
        self.error = None
        self.mode = SessionMode.EDITING
        self.autosave.begin(self.buffer)
        self.preview = derive_stats(self.character)
        await self.autosave.load_existing_draft()

    def set_ability_score(self, ability: AbilityName, value: int) -> None:
        if ability not in ABILITY_NAMES:
            raise ValueError(f"Unknown ability: {ability}")
        buffer = self._require_buffer()
        scores = buffer.ability_scores or AbilityScorePatch()
        scores = scores.model_copy(update={ability: value})
        self.apply(buffer.model_copy(update={"ability_scores": scores}))

    def set_backstory(self, backstory: str) -> None:
        self.apply(self._require_buffer().model_copy(update={"backstory": backstory}))

    def set_notes(self, notes: str) -> None:
        self.apply(self._require_buffer().model_copy(update={"notes": notes}))

    def apply(self, buffer: EditBuffer) -> None:
        self._require_buffer()
        # model_copy does not validate; reject bad values before they reach the
        # preview or the draft store.
        buffer = EditBuffer.model_validate(buffer.model_dump())
        self.buffer = buffer
        self.preview = derive_stats(merge_buffer(self.character, buffer))
        self.autosave.on_field_changed(buffer)

    def restore_draft(self) -> EditBuffer:
        buffer = self.autosave.restore()
        if not self.editing:
            self.mode = SessionMode.EDITING
            self.autosave.begin(seed_buffer(self.character))
        self.buffer = buffer
        self.preview = derive_stats(merge_buffer(self.character, buffer))
        return buffer

    async def discard_draft(self) -> None:
        await self.autosave.discard()

    async def save(self) -> bool:
        buffer = self._require_buffer()
        self.saving = True
        try:
            result = await self._characters.update_character(
                self.character_id,
                self.user_id,
                buffer,
            )
        except Exception:
            logger.exception("Saving character %s failed", self.character_id)
            self.error = "Failed to save changes"
            return False
        finally:
            self.saving = False

        if not result.ok or result.data is None:
            self.error = result.message or "Failed to save changes"
            logger.error("Saving character %s failed: %s", self.character_id, self.error)
            return False

        self.character = result.data
        self.error = None
        self._leave_editing()
        self._show_save_notice()
        # The stored draft is superseded by the saved character; let any
        # write still in flight land before clearing it.
        await self.autosave.settle()
        await self.autosave.discard()
        return True

    def cancel(self) -> None:
        if not self.editing:
            return
        self._leave_editing()

    async def close(self) -> None:
        self._clear_save_notice()
        self._leave_editing()
        await self.autosave.settle()

    def _leave_editing(self) -> None:
        self.autosave.end()
        self.autosave.restorable = None
        self.buffer = None
        self.mode = SessionMode.VIEWING
        self.preview = derive_stats(self.character)

    def _show_save_notice(self) -> None:
        self._clear_save_notice()
        self.save_succeeded = True
        self._save_notice = self._scheduler.call_later(
            self.save_notice_seconds,
            self._on_save_notice_elapsed,
        )

    def _on_save_notice_elapsed(self) -> None:
        self._save_notice = None
        self.save_succeeded = False

    def _clear_save_notice(self) -> None:
        if self._save_notice is not None:
            self._save_notice.cancel()
            self._save_notice = None
        self.save_succeeded = False

    def _require_buffer(self) -> EditBuffer:
        if not self.editing or self.buffer is None:
            raise EditSessionError("Character is not being edited.")
        return self.buffer

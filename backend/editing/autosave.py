from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

from config import settings
from editing.buffer import Draft, EditBuffer
from editing.gateways import OPERATION_FAILED, DraftGateway, Result
from editing.scheduler import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class AutosaveStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SAVED = "saved"


class AutosaveController:
    """Debounced draft persistence for one character-editing session.

    Every watched change while editing re-arms a single debounce timer, so a
    burst of edits produces one draft write at "last change + window". Draft
    writes for the session are serialized: a write that becomes due while an
    earlier one is still in flight waits for it to settle first. Failures of
    any draft operation are logged, kept in ``last_error`` and never raised.
    """

    def __init__(
        self,
        drafts: DraftGateway,
        character_id: int,
        user_id: str,
        *,
        scheduler: Scheduler | None = None,
        debounce_seconds: float | None = None,
        notice_seconds: float | None = None,
    ) -> None:
        self.character_id = character_id
        self.user_id = user_id
        self._drafts = drafts
        self._scheduler = scheduler or LoopScheduler()
        if debounce_seconds is None:
            debounce_seconds = settings.autosave_debounce_seconds
        if notice_seconds is None:
            notice_seconds = settings.autosave_notice_seconds
        self.debounce_seconds = debounce_seconds
        self.notice_seconds = notice_seconds

        self.status = AutosaveStatus.IDLE
        self.deadline: float | None = None
        self.editing = False
        self.restorable: Draft | None = None
        self.autosave_succeeded = False
        self.last_error: str | None = None

        self._baseline: EditBuffer | None = None
        self._pending: EditBuffer | None = None
        self._timer: TimerHandle | None = None
        self._notice_timer: TimerHandle | None = None
        self._inflight: asyncio.Task | None = None
        self._generation = 0

    @property
    def autosaving(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def begin(self, baseline: EditBuffer | None = None) -> None:
        self.editing = True
        self._baseline = baseline.model_copy(deep=True) if baseline is not None else None

    def end(self) -> None:
        self.cancel_pending()
        self.editing = False
        self._baseline = None

    def on_field_changed(self, buffer: EditBuffer) -> None:
        if not self.editing:
            return

        self._cancel_timer()
        if self._baseline is not None and buffer == self._baseline:
            self._pending = None
            self.deadline = None
            if self.status is AutosaveStatus.PENDING:
                self.status = AutosaveStatus.IDLE
            return

        self._pending = buffer.model_copy(deep=True)
        self.deadline = self._scheduler.now() + self.debounce_seconds
        self._timer = self._scheduler.call_later(self.debounce_seconds, self._on_timer)
        self.status = AutosaveStatus.PENDING
        logger.debug(
            "Autosave for character %s scheduled at %.3f",
            self.character_id,
            self.deadline,
        )

    def on_debounce_elapsed(self) -> asyncio.Task | None:
        self._cancel_timer()
        buffer = self._pending
        self._pending = None
        self.deadline = None
        if buffer is None or not self.editing:
            if self.status is AutosaveStatus.PENDING:
                self.status = AutosaveStatus.IDLE
            return None

        self.status = AutosaveStatus.SAVING
        previous = self._inflight
        task = self._scheduler.spawn(self._write(buffer, previous, self._generation))
        self._inflight = task
        return task

    def cancel_pending(self) -> None:
        self._cancel_timer()
        self._cancel_notice()
        self._pending = None
        self.deadline = None
        self.autosave_succeeded = False
        self.status = AutosaveStatus.IDLE
        # A write already in flight may finish, but its outcome is ignored.
        self._generation += 1

    async def load_existing_draft(self) -> Draft | None:
        generation = self._generation
        result = await self._call("load", self._drafts.get_draft)
        if generation != self._generation or not self.editing:
            logger.debug("Ignoring draft load for closed edit of %s", self.character_id)
            return None
        draft = result.data if result.ok else None
        if draft is None or draft.is_empty():
            self.restorable = None
            return None
        self.restorable = draft
        return draft

    def restore(self, draft: Draft | None = None) -> EditBuffer:
        """Hand back a stored draft as the new edit buffer.

        The stored copy is left in place: a later explicit save supersedes it
        and a cancelled edit keeps it available for the next visit.
        """
        draft = draft or self.restorable
        if draft is None:
            raise LookupError("No draft is available to restore.")
        self.restorable = None
        return draft.changes.model_copy(deep=True)

    async def discard(self) -> None:
        self.restorable = None
        await self._call("clear", self._drafts.clear_draft)

    async def settle(self) -> None:
        while self._inflight is not None:
            task = self._inflight
            await asyncio.wait({task})
            if self._inflight is task:
                self._inflight = None

    async def close(self) -> None:
        self.end()
        await self.settle()

    def _on_timer(self) -> None:
        self._timer = None
        self.on_debounce_elapsed()

    async def _write(
        self,
        buffer: EditBuffer,
        previous: asyncio.Task | None,
        generation: int,
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})

        result = await self._call("save", self._drafts.save_draft, buffer)
        if self._inflight is asyncio.current_task():
            self._inflight = None
        if generation != self._generation:
            logger.debug("Ignoring autosave result for closed edit of %s", self.character_id)
            return

        if result.ok:
            self._show_notice()
        # Only the last queued write settles the status.
        if self._inflight is None and self.status is AutosaveStatus.SAVING:
            self.status = AutosaveStatus.SAVED if result.ok else AutosaveStatus.IDLE

    async def _call(
        self,
        operation: str,
        method: Callable[..., Awaitable[Result]],
        *args,
    ) -> Result:
        try:
            result = await method(self.character_id, self.user_id, *args)
        except Exception as exc:
            result = Result.failure(OPERATION_FAILED, str(exc) or exc.__class__.__name__)

        if result.ok:
            self.last_error = None
        else:
            self.last_error = result.message or f"Draft {operation} failed"
            logger.warning(
                "Draft %s failed for character %s: %s",
                operation,
                self.character_id,
                self.last_error,
            )
        return result

    def _show_notice(self) -> None:
        self._cancel_notice()
        self.autosave_succeeded = True
        self._notice_timer = self._scheduler.call_later(self.notice_seconds, self._clear_notice)

    def _clear_notice(self) -> None:
        self._notice_timer = None
        self.autosave_succeeded = False
        if self.status is AutosaveStatus.SAVED:
            self.status = AutosaveStatus.IDLE

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_notice(self) -> None:
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from dataclasses import dataclass, field  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402

from editing.buffer import Draft, EditBuffer, merge_buffer  # noqa: E402
from editing.gateways import CHARACTER_NOT_FOUND, DATABASE_ERROR, Result  # noqa: E402
from editing.scheduler import LoopScheduler  # noqa: E402
from rules.schemas import Character  # noqa: E402


@dataclass
class ManualTimer:
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(LoopScheduler):
    """Virtual clock: timers fire only when the test advances time."""

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(when=self._now + delay, seq=self._seq, callback=callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while True:
            due = [
                timer
                for timer in self._timers
                if not timer.cancelled and timer.when <= target + 1e-9
            ]
            if not due:
                break
            timer = min(due, key=lambda item: (item.when, item.seq))
            self._timers.remove(timer)
            self._now = max(self._now, timer.when)
            timer.callback()
        self._now = target

    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self._timers if not timer.cancelled]


@dataclass
class FakeDraftGateway:
    scheduler: ManualScheduler | None = None
    drafts: dict[tuple[int, str], Draft] = field(default_factory=dict)
    saves: list[tuple[float, EditBuffer]] = field(default_factory=list)
    clears: int = 0
    fail_saves: bool = False
    raise_on_save: bool = False
    fail_clears: bool = False
    fail_loads: bool = False
    gate: object | None = None
    load_gate: object | None = None

    async def save_draft(self, character_id: int, user_id: str, patch: EditBuffer) -> Result:
        when = self.scheduler.now() if self.scheduler else 0.0
        self.saves.append((when, patch))
        if self.gate is not None:
            await self.gate.wait()
        if self.raise_on_save:
            raise ConnectionError("draft store unreachable")
        if self.fail_saves:
            return Result.failure(DATABASE_ERROR, "Failed to save draft")
        draft = Draft(character_id=character_id, user_id=user_id, changes=patch)
        self.drafts[(character_id, user_id)] = draft
        return Result.success(draft)

    async def get_draft(self, character_id: int, user_id: str) -> Result:
        if self.load_gate is not None:
            await self.load_gate.wait()
        if self.fail_loads:
            return Result.failure(DATABASE_ERROR, "Failed to load draft")
        return Result.success(self.drafts.get((character_id, user_id)))

    async def clear_draft(self, character_id: int, user_id: str) -> Result:
        self.clears += 1
        if self.fail_clears:
            raise ConnectionError("draft store unreachable")
        self.drafts.pop((character_id, user_id), None)
        return Result.success(None)


@dataclass
class FakeCharacterGateway:
    characters: dict[int, Character] = field(default_factory=dict)
    updates: list[EditBuffer] = field(default_factory=list)
    failure_message: str | None = None

    async def get_character(self, character_id: int, user_id: str) -> Result:
        character = self.characters.get(character_id)
        if character is None or character.owner_id != user_id:
            return Result.failure(CHARACTER_NOT_FOUND, "Character not found")
        return Result.success(character)

    async def update_character(self, character_id: int, user_id: str, patch: EditBuffer) -> Result:
        self.updates.append(patch)
        if self.failure_message:
            return Result.failure(DATABASE_ERROR, self.failure_message)
        character = self.characters.get(character_id)
        if character is None or character.owner_id != user_id:
            return Result.failure(CHARACTER_NOT_FOUND, "Character not found")
        updated = merge_buffer(character, patch)
        self.characters[character_id] = updated
        return Result.success(updated)


def build_character(**overrides) -> Character:
    payload = {
        "id": 7,
        "owner_id": "user-1",
        "name": "Brannoc",
        "race": "Human",
        "ability_scores": {
            "strength": 16,
            "dexterity": 14,
            "constitution": 12,
            "intelligence": 10,
            "wisdom": 8,
            "charisma": 13,
        },
        "classes": [{"name": "fighter", "level": 3}, {"name": "rogue", "level": 2}],
        "hit_points": {"maximum": 47, "current": 47, "temporary": 0},
        "armor_class": 16,
        "saving_throws": {"strength": True, "constitution": True},
        "skills": {"athletics": True, "perception": False},
        "backstory": "Raised on the docks.",
        "notes": "",
    }
    payload.update(overrides)
    return Character.model_validate(payload)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def drafts(scheduler: ManualScheduler) -> FakeDraftGateway:
    return FakeDraftGateway(scheduler=scheduler)


@pytest.fixture
def character() -> Character:
    return build_character()

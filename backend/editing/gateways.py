from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from editing.buffer import Draft, EditBuffer
from rules.schemas import Character

T = TypeVar("T")

CHARACTER_NOT_FOUND = "CHARACTER_NOT_FOUND"
DATABASE_ERROR = "DATABASE_ERROR"
OPERATION_FAILED = "OPERATION_FAILED"


@dataclass(frozen=True)
class GatewayError:
    code: str
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    data: T | None = None
    error: GatewayError | None = None

    @classmethod
    def success(cls, data: T | None = None) -> "Result[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, code: str, message: str) -> "Result[T]":
        return cls(ok=False, error=GatewayError(code=code, message=message))

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


class CharacterGateway(Protocol):
    async def get_character(self, character_id: int, user_id: str) -> Result[Character]:
        ...

    async def update_character(
        self,
        character_id: int,
        user_id: str,
        patch: EditBuffer,
    ) -> Result[Character]:
        ...


class DraftGateway(Protocol):
    async def save_draft(
        self,
        character_id: int,
        user_id: str,
        patch: EditBuffer,
    ) -> Result[Draft]:
        ...

    async def get_draft(self, character_id: int, user_id: str) -> Result[Draft | None]:
        ...

    async def clear_draft(self, character_id: int, user_id: str) -> Result[None]:
        ...

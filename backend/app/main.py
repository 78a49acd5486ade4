import logging
from typing import Any

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Response
from pydantic import BaseModel

from db import check_db_connection
from editing.buffer import Draft, EditBuffer
from editing.gateways import CHARACTER_NOT_FOUND, Result
from logging_config import configure_logging
from rules.schemas import CharacterSummary, DerivedStats
from rules.stats import derive_stats, summarize
from rules.validation import ValidationError, validate_character_payload
from store.characters import SqlCharacterGateway, SqlDraftGateway

configure_logging()
logger = logging.getLogger(__name__)

characters = SqlCharacterGateway()
drafts = SqlDraftGateway()

app = FastAPI(
    title="party-ledger API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


class CharacterStatsResponse(BaseModel):
    character: CharacterSummary
    stats: DerivedStats


def current_user(x_user_id: str | None = Header(default=None)) -> str:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


def _raise_for_failure(result: Result) -> None:
    if result.ok:
        return
    error = result.error
    status_code = 404 if error and error.code == CHARACTER_NOT_FOUND else 400
    raise HTTPException(status_code=status_code, detail=result.message or "Request failed")


@app.get("/health")
def health() -> dict:
    try:
        check_db_connection()
    except Exception as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ok"}


@app.post("/api/characters/preview", response_model=DerivedStats)
def preview_stats(payload: dict[str, Any] = Body(...)) -> DerivedStats:
    try:
        character = validate_character_payload(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "fields": exc.fields},
        ) from exc
    return derive_stats(character)


@app.get("/api/characters/{character_id}/stats", response_model=CharacterStatsResponse)
async def character_stats(
    character_id: int,
    user_id: str = Depends(current_user),
) -> CharacterStatsResponse:
    result = await characters.get_character(character_id, user_id)
    _raise_for_failure(result)
    character = result.data
    return CharacterStatsResponse(character=summarize(character), stats=derive_stats(character))


@app.patch("/api/characters/{character_id}", response_model=CharacterStatsResponse)
async def save_character(
    character_id: int,
    patch: EditBuffer,
    user_id: str = Depends(current_user),
) -> CharacterStatsResponse:
    result = await characters.update_character(character_id, user_id, patch)
    _raise_for_failure(result)
    character = result.data
    cleared = await drafts.clear_draft(character_id, user_id)
    if not cleared.ok:
        logger.warning(
            "Clearing draft for saved character %s failed: %s",
            character_id,
            cleared.message,
        )
    return CharacterStatsResponse(character=summarize(character), stats=derive_stats(character))


@app.get("/api/characters/{character_id}/draft", response_model=Draft)
async def get_draft(character_id: int, user_id: str = Depends(current_user)) -> Draft:
    result = await drafts.get_draft(character_id, user_id)
    _raise_for_failure(result)
    if result.data is None or result.data.is_empty():
        raise HTTPException(status_code=404, detail="No draft saved")
    return result.data


@app.put("/api/characters/{character_id}/draft", response_model=Draft)
async def put_draft(
    character_id: int,
    patch: EditBuffer,
    user_id: str = Depends(current_user),
) -> Draft:
    result = await drafts.save_draft(character_id, user_id, patch)
    _raise_for_failure(result)
    return result.data


@app.delete("/api/characters/{character_id}/draft", status_code=204)
async def delete_draft(character_id: int, user_id: str = Depends(current_user)) -> Response:
    result = await drafts.clear_draft(character_id, user_id)
    _raise_for_failure(result)
    return Response(status_code=204)

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCharacterGateway, FakeDraftGateway, build_character

from app.main import app
from editing.buffer import Draft, EditBuffer
from editing.gateways import DATABASE_ERROR, Result

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def gateways(monkeypatch):
    characters = FakeCharacterGateway(characters={7: build_character()})
    drafts = FakeDraftGateway()
    monkeypatch.setattr("app.main.characters", characters)
    monkeypatch.setattr("app.main.drafts", drafts)
    return characters, drafts


@pytest.fixture
def client(gateways) -> TestClient:
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_character_stats(client):
    response = client.get("/api/characters/7/stats", headers=HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["character"]["name"] == "Brannoc"
    stats = payload["stats"]
    assert stats["total_level"] == 5
    assert stats["proficiency_bonus"] == 3
    assert stats["ability_modifiers"]["strength"] == 3
    assert stats["saving_throws"]["strength"] == {"bonus": 6, "proficient": True}
    assert stats["skills"]["perception"] == {"bonus": -1, "proficient": False}
    assert stats["life_status"] == "alive"
    assert stats["is_alive"] is True


def test_stats_require_identity(client):
    response = client.get("/api/characters/7/stats")
    assert response.status_code == 401


def test_unknown_character_is_404(client):
    response = client.get("/api/characters/99/stats", headers=HEADERS)
    assert response.status_code == 404


def test_other_users_character_is_404(client):
    response = client.get("/api/characters/7/stats", headers={"X-User-Id": "user-2"})
    assert response.status_code == 404


def test_preview_derives_unsaved_payload(client):
    response = client.post(
        "/api/characters/preview",
        json={
            "owner_id": "user-1",
            "name": "Sable",
            "ability_scores": {"dexterity": 17},
            "classes": [{"name": "ranger", "level": 9}],
            "hit_points": {"maximum": 60, "current": 0},
        },
    )

    assert response.status_code == 200
    stats = response.json()
    assert stats["proficiency_bonus"] == 4
    assert stats["initiative_modifier"] == 3
    assert stats["life_status"] == "unconscious"


def test_preview_reports_invalid_fields(client):
    response = client.post(
        "/api/characters/preview",
        json={
            "owner_id": "user-1",
            "name": "Sable",
            "classes": [{"name": "ranger", "level": 15}, {"name": "cleric", "level": 6}],
            "hit_points": {"maximum": 60, "current": 60},
        },
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert "classes" in detail["fields"]


def test_save_character_patch(client, gateways):
    characters, drafts = gateways
    drafts.drafts[(7, "user-1")] = Draft(
        character_id=7,
        user_id="user-1",
        changes=EditBuffer(notes="stale"),
    )

    response = client.patch(
        "/api/characters/7",
        json={"ability_scores": {"strength": 20}},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["stats"]["ability_modifiers"]["strength"] == 5
    assert characters.characters[7].ability_scores.strength == 20
    assert drafts.drafts == {}
    assert drafts.clears == 1


def test_save_character_failure_is_400(client, gateways):
    characters, _ = gateways
    characters.failure_message = "Failed to save changes"

    response = client.patch("/api/characters/7", json={"notes": "x"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"] == "Failed to save changes"


def test_draft_round_trip(client, gateways):
    _, drafts = gateways

    assert client.get("/api/characters/7/draft", headers=HEADERS).status_code == 404

    saved = client.put("/api/characters/7/draft", json={"notes": "later"}, headers=HEADERS)
    assert saved.status_code == 200
    assert saved.json()["changes"]["notes"] == "later"

    loaded = client.get("/api/characters/7/draft", headers=HEADERS)
    assert loaded.status_code == 200
    assert loaded.json()["changes"]["notes"] == "later"

    deleted = client.delete("/api/characters/7/draft", headers=HEADERS)
    assert deleted.status_code == 204
    assert drafts.drafts == {}


def test_empty_draft_is_404(client, gateways):
    _, drafts = gateways
    drafts.drafts[(7, "user-1")] = Draft(character_id=7, user_id="user-1", changes=EditBuffer())

    response = client.get("/api/characters/7/draft", headers=HEADERS)

    assert response.status_code == 404


def test_draft_rejects_unknown_fields(client):
    response = client.put(
        "/api/characters/7/draft",
        json={"name": "Renamed"},
        headers=HEADERS,
    )
    assert response.status_code == 422


def test_save_succeeds_when_draft_clear_fails(client, gateways):
    _, drafts = gateways

    async def clear_draft(character_id, user_id):
        return Result.failure(DATABASE_ERROR, "Failed to clear draft")

    drafts.clear_draft = clear_draft

    response = client.patch("/api/characters/7", json={"notes": "saved"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["character"]["name"] == "Brannoc"


def test_failed_save_keeps_draft(client, gateways):
    characters, drafts = gateways
    characters.failure_message = "Failed to save changes"
    drafts.drafts[(7, "user-1")] = Draft(
        character_id=7,
        user_id="user-1",
        changes=EditBuffer(notes="keep"),
    )

    response = client.patch("/api/characters/7", json={"notes": "x"}, headers=HEADERS)

    assert response.status_code == 400
    assert (7, "user-1") in drafts.drafts
    assert drafts.clears == 0

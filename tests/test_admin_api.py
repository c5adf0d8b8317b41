"""
管理后台接口测试
"""

import pytest

from madurinn.services.person_service import DEFAULT_PERSONS, PersonService

TOKEN = "s3cret-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def admin_token(clean_settings, monkeypatch):
    monkeypatch.setattr(clean_settings, "ADMIN_TOKEN", TOKEN)


def create_person(client, **overrides):
    body = {
        "display_name": "Jón Jónsson",
        "reveal_text": "Tilbúin persóna fyrir prófanir.",
        "aliases": ["jon", "jonni"],
        "yes_keywords": ["prof"],
    }
    body.update(overrides)
    response = client.post("/api/admin/persons", json=body, headers=AUTH)
    assert response.status_code == 200
    return response.json()


def test_placeholder_token_is_not_configured(client):
    response = client.get("/api/admin/persons", headers={"Authorization": "Bearer CHANGE_ME"})
    assert response.status_code == 503
    assert response.json()["detail"] == "ADMIN_TOKEN_NOT_CONFIGURED"


def test_missing_or_wrong_token(client, admin_token):
    assert client.get("/api/admin/persons").status_code == 401
    wrong = client.get("/api/admin/persons", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "UNAUTHORIZED"


def test_cf_token_takes_precedence(client, admin_token, clean_settings, monkeypatch):
    monkeypatch.setattr(clean_settings, "CF_ADMIN_TOKEN", "cf-token")
    assert client.get("/api/admin/persons", headers=AUTH).status_code == 401
    assert client.get("/api/admin/persons", headers={"Authorization": "Bearer cf-token"}).status_code == 200


def test_person_crud(client, admin_token):
    persons = client.get("/api/admin/persons", headers=AUTH).json()
    assert {p["id"] for p in persons} >= {"p-egill", "p-bjork", "p-vigdis"}

    person = create_person(client, aliases=[f"alias-{i}" for i in range(30)])
    assert person["slug"] == f"jon-jonsson-{person['id'][:8]}"
    assert len(person["aliases"]) == 25

    updated = client.patch(f"/api/admin/persons/{person['id']}", json={"hint_text": "Ný vísbending."}, headers=AUTH)
    assert updated.status_code == 200
    assert updated.json()["hint_text"] == "Ný vísbending."
    assert updated.json()["display_name"] == "Jón Jónsson"

    assert client.delete(f"/api/admin/persons/{person['id']}", headers=AUTH).status_code == 200
    missing = client.delete(f"/api/admin/persons/{person['id']}", headers=AUTH)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "PERSON_NOT_FOUND"


def test_round_assignment(client, admin_token):
    person = create_person(client)

    empty = client.get("/api/admin/rounds/2030-01-01", headers=AUTH).json()
    assert empty["assigned"] is False

    response = client.put("/api/admin/rounds/2030-01-01", json={
        "person_id": person["id"],
        "hint_text": "Sérstök vísbending.",
        "status_override": "open",
    }, headers=AUTH)
    assert response.status_code == 200

    assignment = client.get("/api/admin/rounds/2030-01-01", headers=AUTH).json()
    assert assignment["assigned"] is True
    assert assignment["person_id"] == person["id"]
    assert assignment["person_name"] == "Jón Jónsson"
    assert assignment["status_override"] == "open"
    assert assignment["opens_at"] == "2030-01-01T12:00:00Z"

    in_use = client.delete(f"/api/admin/persons/{person['id']}", headers=AUTH)
    assert in_use.status_code == 409
    assert in_use.json()["detail"] == "PERSON_IN_USE"


def test_assign_unknown_person(client, admin_token):
    response = client.put("/api/admin/rounds/2030-01-01", json={"person_id": "nobody"}, headers=AUTH)
    assert response.status_code == 404
    assert response.json()["detail"] == "PERSON_NOT_FOUND"


def test_invalid_status_override(client, admin_token):
    response = client.put("/api/admin/rounds/2030-01-01",
                          json={"person_id": "p-bjork", "status_override": "paused"}, headers=AUTH)
    assert response.status_code == 422


def test_submissions(client, admin_token, clean_settings, monkeypatch):
    monkeypatch.setattr(clean_settings, "FORCE_ROUND_OPEN", True)
    session = client.post("/api/game/session/start", json={"device_id": "dev-a"}).json()["session"]
    client.post("/api/game/question", json={
        "session_id": session["id"],
        "question": "Hefur manneskjan búið í útlöndum lengi?",
    })
    client.post("/api/game/guess", json={"session_id": session["id"], "guess": "Enginn Sérstakur"})

    entries = client.get("/api/admin/submissions", params={"round_id": session["round_id"]}, headers=AUTH).json()
    assert {entry["kind"] for entry in entries} == {"question", "guess"}

    flagged = client.get("/api/admin/submissions", params={"flagged_only": True}, headers=AUTH).json()
    assert len(flagged) == 1
    assert flagged[0]["kind"] == "question"
    assert flagged[0]["answer_label"] == "unknown"

    other_round = client.get("/api/admin/submissions", params={"round_id": "1999-01-01"}, headers=AUTH).json()
    assert other_round == []


def test_blank_round_hint_keeps_person_hint(client, admin_token, db):
    response = client.put("/api/admin/rounds/2030-01-02",
                          json={"person_id": "p-bjork", "hint_text": "   "}, headers=AUTH)
    assert response.status_code == 200
    assert response.json()["hint_text"] is None

    bjork = next(p for p in DEFAULT_PERSONS if p.id == "p-bjork")
    person = PersonService(db).resolve_person_for_round("2030-01-02")
    assert person.id == "p-bjork"
    assert person.hint_text == bjork.hint_text

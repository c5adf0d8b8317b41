"""
游戏HTTP接口测试（强制开放轮次，不依赖当前时间）
"""

import pytest


@pytest.fixture
def open_round(clean_settings, monkeypatch):
    monkeypatch.setattr(clean_settings, "FORCE_ROUND_OPEN", True)


def start(client, device_id="dev-a"):
    response = client.post("/api/game/session/start", json={"device_id": device_id})
    assert response.status_code == 200
    return response.json()["session"]


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").status_code == 200


def test_round(client, open_round):
    data = client.get("/api/game/round").json()
    assert data["round"]["status"] == "open"
    assert data["round"]["max_questions"] == 20
    assert data["round"]["opens_at"].endswith("Z")
    assert data["debug"]["force_round_open"] is True
    assert data["debug"]["current_person_name"]


def test_session_flow(client, open_round):
    session = start(client)
    assert start(client)["id"] == session["id"]

    response = client.post("/api/game/question", json={
        "session_id": session["id"],
        "question": "Hefur manneskjan búið í útlöndum lengi?",
    })
    assert response.status_code == 200
    assert response.json()["remaining"] == 19

    state = client.get(f"/api/game/session/{session['id']}").json()
    assert state["session"]["question_count"] == 1
    assert state["questions"][0]["answer_label"] == "unknown"

    hint = client.post("/api/game/hint", json={"session_id": session["id"]})
    assert hint.status_code == 200
    again = client.post("/api/game/hint", json={"session_id": session["id"]})
    assert again.status_code == 409
    assert again.json()["detail"] == "HINT_ALREADY_USED"


def test_guess_and_leaderboard(client, open_round):
    session = start(client)
    person_name = client.get(f"/api/game/debug/round/{session['round_id']}").json()["person_name"]

    response = client.post("/api/game/guess", json={"session_id": session["id"], "guess": person_name})
    data = response.json()
    assert data["correct"] is True
    assert data["reveal_person"]["display_name"] == person_name
    assert data["solved_at"].endswith("Z")

    client.post("/api/game/username", json={"device_id": "dev-a", "username": "Gunna"})
    board = client.get("/api/game/leaderboard", params={"round_id": session["round_id"]}).json()
    assert board["leaderboard"][0]["rank"] == 1
    assert board["leaderboard"][0]["username"] == "Gunna"


def test_input_endpoint(client, open_round):
    session = start(client)
    response = client.post("/api/game/input", json={"session_id": session["id"], "input": "Vísbending"})
    assert response.status_code == 200
    assert response.json()["kind"] == "hint"


def test_unknown_session(client, open_round):
    response = client.post("/api/game/question", json={"session_id": "missing", "question": "Er hún kona?"})
    assert response.status_code == 404
    assert response.json()["detail"] == "SESSION_NOT_FOUND"


def test_request_validation(client, open_round):
    session = start(client)
    assert client.post("/api/game/question", json={"session_id": session["id"], "question": "a"}).status_code == 422
    assert client.post("/api/game/guess", json={"session_id": session["id"], "guess": ""}).status_code == 422


def test_usernames(client):
    assert client.get("/api/game/username", params={"device_id": "dev-a"}).json()["username"] is None

    assert client.post("/api/game/username", json={"device_id": "dev-a", "username": "Gunna"}).status_code == 200
    assert client.get("/api/game/username", params={"device_id": "dev-a"}).json()["username"] == "Gunna"

    taken = client.post("/api/game/username", json={"device_id": "dev-b", "username": "gunna"})
    assert taken.status_code == 409
    assert taken.json()["detail"] == "USERNAME_TAKEN"

    assert client.post("/api/game/username", json={"device_id": "dev-b", "username": "x"}).status_code == 422


def test_invalid_leaderboard_round(client):
    assert client.get("/api/game/leaderboard", params={"round_id": "nope"}).status_code == 400

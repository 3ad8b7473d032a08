"""Tests for the FastAPI service."""

import pytest
from fastapi.testclient import TestClient

from _01_simulator import state
from _01_simulator.simulate import GameSession
from _04_ui import create_app
from _04_ui.core.rate_limiter import RateLimiter


@pytest.fixture
def client(store, scripted_rng):
    app = create_app(tablebase=store, rng=scripted_rng(0.1))
    with TestClient(app) as test_client:
        yield test_client


def _attack(from_index=0, to_index=0):
    return {"type": "attack", "fromIndex": from_index, "toIndex": to_index}


def test_new_game(client):
    response = client.post("/api/new-game", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["playerHands"] == [1, 1]
    assert data["aiHands"] == [1, 1]
    assert data["currentPlayer"] == "player"
    assert data["humanSide"] == "player"
    assert data["isAiTurn"] is False
    assert len(data["legalMoves"]) == 5
    assert data["history"] == []
    assert "session_id" in response.cookies


def test_state_without_game(client):
    response = client.get("/api/state", headers={"X-Session-ID": "nobody"})
    assert response.status_code == 404


def test_move_then_ai_move(client):
    client.post("/api/new-game", json={"startingSide": "player"})

    moved = client.post("/api/move", json=_attack(0, 0))
    assert moved.status_code == 200
    data = moved.json()
    assert data["aiHands"] == [2, 1]
    assert data["currentPlayer"] == "ai"
    assert data["isAiTurn"] is True
    assert data["lastMove"]["label"] == "player L -> ai L"

    again = client.post("/api/move", json=_attack(0, 0))
    assert again.status_code == 400

    ai = client.post("/api/ai-move")
    assert ai.status_code == 200
    data = ai.json()
    assert data["currentPlayer"] == "player"
    assert data["moveCount"] == 2
    assert data["aiMove"]["from"] == "ai"
    assert data["appliedStrength"] == "hard"

    assert client.get("/api/state").json() == {
        key: value for key, value in data.items() if key not in ("aiMove", "appliedStrength")
    }


def test_ai_move_on_human_turn(client):
    client.post("/api/new-game", json={})
    assert client.post("/api/ai-move").status_code == 400


def test_ai_starts_with_requested_strength(client):
    started = client.post("/api/new-game", json={"startingSide": "ai", "cpuStrength": "weak"})
    assert started.json()["isAiTurn"] is True
    assert started.json()["cpuStrength"] == "weak"

    response = client.post("/api/ai-move", json={"cpuStrength": "normal"})
    assert response.status_code == 200
    assert response.json()["appliedStrength"] == "normal"


def test_game_over_flow(client):
    client.post("/api/new-game", json={})
    session = client.app.state.sessions.get(client.cookies["session_id"])
    session.game = GameSession(initial=state.State((1, 4), (0, 1)))

    response = client.post("/api/move", json=_attack(1, 1))
    assert response.status_code == 200
    data = response.json()
    assert data["gameOver"] is True
    assert data["loser"] == "ai"
    assert data["currentPlayer"] == "player"
    assert data["isAiTurn"] is False
    assert data["legalMoves"] == []

    assert client.post("/api/ai-move").status_code == 409
    assert client.post("/api/move", json=_attack()).status_code == 409
    assert client.get("/api/hints").json()["moves"] == []


def test_illegal_split(client):
    client.post("/api/new-game", json={})
    response = client.post("/api/move", json={"type": "split", "values": [1, 1]})
    assert response.status_code == 400
    assert client.get("/api/state").json()["moveCount"] == 0


def test_incomplete_moves(client):
    client.post("/api/new-game", json={})
    assert client.post("/api/move", json={"type": "attack", "fromIndex": 0}).status_code == 400
    assert client.post("/api/move", json={"type": "split"}).status_code == 400
    assert client.post("/api/move", json={"type": "jump"}).status_code == 422


def test_legal_moves(client):
    client.post("/api/new-game", json={})
    moves = client.get("/api/legal-moves").json()
    assert len(moves) == 5
    assert moves[-1] == {"type": "split", "owner": "player", "values": [0, 2], "label": "player split 0/2"}


def test_hints(client):
    client.post("/api/new-game", json={})
    data = client.get("/api/hints").json()
    assert data["side"] == "player"
    assert data["perspective"] == "player"
    assert data["tablebaseLoaded"] is True
    assert len(data["moves"]) == 5
    assert {move["outcome"] for move in data["moves"]} <= {"WIN", "LOSS", "DRAW"}

    other = client.get("/api/hints", params={"perspective": "ai"}).json()
    assert other["perspective"] == "ai"
    assert len(other["moves"]) == 5


def test_hints_reject_unknown_side(client):
    client.post("/api/new-game", json={})
    assert client.get("/api/hints", params={"side": "referee"}).status_code == 422


def test_hint_search(client):
    client.post("/api/new-game", json={})
    response = client.post("/api/hint-search", json={"depth": 3})
    assert response.status_code == 200
    data = response.json()
    assert data["side"] == "player"
    assert data["depth"] == 3
    assert data["result"]["outcome"] in {"WIN", "LOSS", "DRAW"}
    assert data["result"]["bestMove"] is not None


def test_hint_search_depth_is_bounded(client):
    client.post("/api/new-game", json={})
    assert client.post("/api/hint-search", json={"depth": 0}).status_code == 422
    assert client.post("/api/hint-search", json={"depth": 16}).status_code == 422
    assert client.post("/api/hint-search", json={"depth": 30}).status_code == 422
    assert client.post("/api/hint-search", json={"depth": 15}).status_code == 200


def test_hint_search_rate_limit(client):
    client.post("/api/new-game", json={})
    client.app.state.services.search_limiter = RateLimiter(max_requests=2)
    assert client.post("/api/hint-search", json={"depth": 1}).status_code == 200
    assert client.post("/api/hint-search", json={"depth": 1}).status_code == 200
    assert client.post("/api/hint-search", json={"depth": 1}).status_code == 429


def test_tablebase_stats_and_entry(client):
    stats = client.get("/api/tablebase").json()["stats"]
    assert stats["loaded"] is True
    assert stats["total"] == 450

    entry = client.get("/api/tablebase", params={"key": "1,4|0,1|player"}).json()
    assert entry == {"key": "1,4|0,1|player", "outcome": "WIN", "distance": 1}

    assert client.get("/api/tablebase", params={"key": "bogus"}).status_code == 404


def test_sessions_are_isolated(store, scripted_rng):
    app = create_app(tablebase=store, rng=scripted_rng())
    with TestClient(app) as first, TestClient(app) as second:
        first.post("/api/new-game", json={})
        first.post("/api/move", json=_attack())
        second.post("/api/new-game", json={"startingSide": "ai"})
        assert first.get("/api/state").json()["moveCount"] == 1
        assert second.get("/api/state").json()["currentPlayer"] == "ai"


def test_session_header(client):
    headers = {"X-Session-ID": "header-session"}
    client.cookies.clear()
    assert client.post("/api/new-game", json={}, headers=headers).status_code == 200
    client.cookies.clear()
    assert client.get("/api/state", headers=headers).status_code == 200

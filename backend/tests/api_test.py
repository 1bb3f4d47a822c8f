import pytest
from fastapi.testclient import TestClient

from courtqueue.main import app
from courtqueue.store import SessionStore
from courtqueue.ws_manager import manager


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(manager, "store", SessionStore(default_courts=3))
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_state(client):
    body = client.get("/state").json()
    assert body["type"] == "session_state"
    assert body["session_id"] == "club-session-1"
    assert body["version"] == 1
    assert body["state"]["courts"] == 3
    assert body["state"]["players"] == []
    assert [g["court"] for g in body["state"]["games"]] == [1, 2, 3]


def test_ws_sends_state_on_connect(client):
    with client.websocket_connect("/ws?device_id=a") as ws:
        msg = ws.receive_json()
        assert msg["type"] == "session_state"
        assert msg["state"]["courts"] == 3


def test_ws_operation_is_broadcast(client):
    with client.websocket_connect("/ws?device_id=a") as a, \
         client.websocket_connect("/ws?device_id=b") as b:
        a.receive_json()
        b.receive_json()

        a.send_json({"type": "add_player", "name": "Mark", "skill": "Advanced"})
        for ws in (a, b):
            msg = ws.receive_json()
            assert msg["type"] == "session_state"
            assert [(p["name"], p["skill"]) for p in msg["state"]["players"]] == [("Mark", "advanced")]
            assert msg["version"] == 2


def test_ws_validation_errors_go_to_sender(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()

        ws.send_json({"type": "batch_add_players", "text": "Mark, new\nJamie, not-a-skill"})
        msg = ws.receive_json()
        assert msg["type"] == "error"
        assert msg["op"] == "batch_add_players"
        assert msg["line"] == 2

        ws.send_json({"type": "end_game"})
        msg = ws.receive_json()
        assert msg == {"type": "error", "op": "end_game", "message": "missing field 'court'"}

        ws.send_json({"type": "change_courts", "courts": "4"})
        assert ws.receive_json()["message"] == "courts must be int"

        ws.send_json({"type": "serve"})
        assert ws.receive_json()["type"] == "error"

    assert client.get("/state").json()["state"]["players"] == []


def test_ws_noop_and_bad_json(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_json({"type": "start_game"})
        assert ws.receive_json() == {"type": "noop", "op": "start_game"}


def test_ws_session_flow(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({
            "type": "batch_add_players",
            "text": "A, new\nB, new\nC, beginner\nD, beginner",
        })
        state = ws.receive_json()["state"]
        assert len(state["players"]) == 4

        ws.send_json({"type": "auto_pick"})
        pick = ws.receive_json()
        assert pick == {"type": "auto_pick", "picked": 4, "fallback": False}
        state = ws.receive_json()["state"]
        assert {p["name"] for p in state["queue"]} == {"A", "B", "C", "D"}

        ws.send_json({"type": "add_player", "name": "E", "skill": "expert"})
        state = ws.receive_json()["state"]
        assert len(state["players"]) == 5

        ws.send_json({"type": "start_game"})
        state = ws.receive_json()["state"]
        assert len(state["games"][0]["players"]) == 4
        assert state["queue"] == []

        ws.send_json({"type": "change_courts", "courts": 1})
        state = ws.receive_json()["state"]
        assert state["courts"] == 1

        ws.send_json({"type": "end_game", "court": 1})
        state = ws.receive_json()["state"]
        assert state["games"] == [{"court": 1, "players": []}]
        assert sorted(p["gamesPlayed"] for p in state["players"]) == [0, 1, 1, 1, 1]

        ws.send_json({"type": "reset_session"})
        msg = ws.receive_json()
        assert msg["state"]["players"] == []
        assert msg["state"]["courts"] == 1


def test_serve_runs_uvicorn_with_config(monkeypatch):
    from courtqueue import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    main.serve()
    assert calls == [(main.app, {"host": main.config.host, "port": main.config.port, "log_config": None})]

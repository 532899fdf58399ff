from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect


def _line(view: dict) -> str | None:
    dialogue = view["engine_state"]["dialogue"]
    return dialogue["text"] if dialogue else None


def _new_session(client: TestClient) -> dict:
    res = client.post("/sessions")
    assert res.status_code == 201
    return res.json()


def _play_intro(client: TestClient, sid: str, branch: str) -> dict:
    view = {}
    for _ in range(3):
        res = client.post(f"/sessions/{sid}/forward")
        assert res.status_code == 200
        view = res.json()
    assert [c["branch"] for c in view["engine_state"]["choices"]] == ["open_door", "pretend_away"]

    res = client.post(f"/sessions/{sid}/choice", json={"choice": branch})
    assert res.status_code == 200
    return res.json()


def test_healthcheck_and_info(client_and_redis) -> None:
    client, _ = client_and_redis

    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "vnengine"


def test_create_session_starts_intro(client_and_redis) -> None:
    client, _ = client_and_redis

    view = _new_session(client)

    assert view["project_id"] == "demo"
    assert view["engine_state"]["status"] == "RUNNING"
    assert view["engine_state"]["current_event"] == "intro"
    assert view["engine_state"]["current_step"] == 1
    assert _line(view) == "The alarm rings. Another day."
    assert view["can_go_back"] is False

    res = client.get(f"/sessions/{view['session_id']}")
    assert res.status_code == 200
    assert res.json()["engine_state"]["current_step"] == 1


def test_forward_back_and_choice_flow(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]

    view = client.post(f"/sessions/{sid}/forward").json()
    assert _line(view) == "Sunlight leaks through the blinds."
    assert view["can_go_back"] is True

    view = client.post(f"/sessions/{sid}/back").json()
    assert _line(view) == "The alarm rings. Another day."
    assert view["can_go_forward"] is True

    view = client.post(f"/sessions/{sid}/forward").json()
    assert _line(view) == "Sunlight leaks through the blinds."

    view = client.post(f"/sessions/{sid}/forward").json()
    assert _line(view) == "Someone knocks at the door."

    view = client.post(f"/sessions/{sid}/forward").json()
    assert view["engine_state"]["choices"] is not None

    view = client.post(f"/sessions/{sid}/choice", json={"choice": "pretend_away"}).json()
    assert view["engine_state"]["current_branch"] == "pretend_away"
    assert view["game_state"]["player"]["personality"] == "secretive"


def test_choice_not_offered_is_conflict(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]

    res = client.post(f"/sessions/{sid}/choice", json={"choice": "open_door"})
    assert res.status_code == 409

    for _ in range(3):
        client.post(f"/sessions/{sid}/forward")
    res = client.post(f"/sessions/{sid}/choice", json={"choice": "fly_away"})
    assert res.status_code == 409


def test_idle_actions_and_travel(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]
    _play_intro(client, sid, "open_door")

    view = client.post(f"/sessions/{sid}/forward").json()
    assert view["engine_state"]["current_event"] is None
    assert view["game_state"]["location_id"] == "hallway"
    assert view["engine_state"]["background"] == "images/hallway.png"
    assert sorted(loc["id"] for loc in view["locations"]) == ["bedroom", "kitchen"]
    assert [a["id"] for a in view["actions"]] == ["wait"]

    view = client.post(f"/sessions/{sid}/actions", json={"action_id": "wait"}).json()
    assert view["game_state"]["game_time"]["hour"] == 9

    view = client.post(f"/sessions/{sid}/travel", json={"location_id": "kitchen"}).json()
    assert view["game_state"]["location_id"] == "kitchen"
    assert view["engine_state"]["background"] == "images/kitchen.png"
    assert [loc["id"] for loc in view["locations"]] == ["hallway"]

    assert client.post(f"/sessions/{sid}/travel", json={"location_id": "attic"}).status_code == 404
    assert client.post(f"/sessions/{sid}/travel", json={"location_id": "bedroom"}).status_code == 409
    assert client.post(f"/sessions/{sid}/actions", json={"action_id": "sleep"}).status_code == 404


def test_follow_up_event_fires_after_intro(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]
    view = _play_intro(client, sid, "pretend_away")
    assert _line(view) == "You hold your breath until the footsteps fade."

    client.post(f"/sessions/{sid}/forward")
    view = client.post(f"/sessions/{sid}/forward").json()

    # The note slid under the door triggers the follow-up event right away.
    assert view["engine_state"]["current_event"] == "read_note"
    assert view["engine_state"]["foreground"] == ["images/note.png"]
    assert _line(view) == "'Meet me in the kitchen.'"


def test_actions_refused_during_event(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]

    res = client.post(f"/sessions/{sid}/actions", json={"action_id": "wait"})
    assert res.status_code == 409


def test_save_list_load_and_delete(client_and_redis) -> None:
    client, r = client_and_redis
    sid = _new_session(client)["session_id"]
    client.post(f"/sessions/{sid}/forward")
    client.post(f"/sessions/{sid}/forward")

    res = client.post(f"/sessions/{sid}/saves/1", json={"name": "before the knock"})
    assert res.status_code == 201
    assert res.json()["current_step"] == 3

    saves = client.get("/saves").json()
    assert saves["project_id"] == "demo"
    assert [s["name"] for s in saves["saves"]] == ["before the knock"]
    assert r.exists("vnengine:save:demo:1")

    other = _new_session(client)["session_id"]
    res = client.post(f"/sessions/{other}/saves/1/load")
    assert res.status_code == 200
    view = res.json()
    assert view["engine_state"]["status"] == "RUNNING"
    assert view["engine_state"]["current_step"] == 3
    assert _line(view) == "Someone knocks at the door."

    assert client.delete("/saves/1").status_code == 204
    assert client.delete("/saves/1").status_code == 404
    assert client.post(f"/sessions/{other}/saves/1/load").status_code == 404


def test_new_game_and_close_session(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]
    client.post(f"/sessions/{sid}/forward")

    view = client.post(f"/sessions/{sid}/new-game").json()
    assert view["engine_state"]["current_step"] == 1
    assert view["can_go_back"] is False

    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.get(f"/sessions/{sid}").status_code == 404
    assert client.delete(f"/sessions/{sid}").status_code == 404


def test_skip_toggle_is_reported(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]

    view = client.post(f"/sessions/{sid}/skip", json={"enabled": True}).json()
    assert view["skip_enabled"] is True

    view = client.post(f"/sessions/{sid}/skip", json={"enabled": False}).json()
    assert view["skip_enabled"] is False


def test_unknown_session_is_404(client_and_redis) -> None:
    client, _ = client_and_redis

    assert client.get(f"/sessions/{uuid4()}").status_code == 404
    assert client.post(f"/sessions/{uuid4()}/forward").status_code == 404


def test_websocket_receives_session_updates(client_and_redis) -> None:
    client, _ = client_and_redis
    sid = _new_session(client)["session_id"]

    with client.websocket_connect(f"/ws/session/{sid}") as ws:
        res = client.post(f"/sessions/{sid}/forward")
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "session_updated"
        assert msg["session_id"] == sid
        assert msg["status"] == "RUNNING"
        assert msg["current_step"] == 2

        assert client.delete(f"/sessions/{sid}").status_code == 204
        assert ws.receive_json() == {"type": "session_closed", "session_id": sid}


def test_websocket_for_unknown_session_is_refused(client_and_redis) -> None:
    client, _ = client_and_redis

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/session/{uuid4()}"):
            pass

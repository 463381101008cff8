from flask import Flask

from app import create_app
from services.catalog import MINIMAL_CATALOG
from services.structured_chat_service import COMPLETE_TEXT
from utils.errors import GatewayError


def _make_app(gateway, **kwargs) -> Flask:
    app = create_app(catalog=MINIMAL_CATALOG, gateway=gateway, **kwargs)
    app.config.update(TESTING=True)
    return app


def test_structured_initial_turn(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()

    resp = client.post("/chat/structured", json={"message": "", "sessionId": "abc", "isInitial": True})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["ok"] is True
    assert body["data"]["sessionId"] == "abc"
    assert "What is your name?" in body["data"]["response"]
    assert "collectedData" not in body["data"]


def test_structured_full_walk_and_follow_up(scripted_gateway, replies):
    gateway = scripted_gateway([replies.text("UPDATE_DATA|cash|9000")])
    client = _make_app(gateway).test_client()
    client.post("/chat/structured", json={"message": "start", "sessionId": "abc"})

    for value in ["Ada", "36", "120000", "5000", "80000"]:
        resp = client.post("/chat/structured", json={"message": value, "sessionId": "abc"})
    data = resp.get_json()["data"]
    assert data["response"] == COMPLETE_TEXT
    assert data["collectedData"]["retirement"] == "80000"

    resp = client.post("/chat/structured", json={"message": "my cash is 9000 now", "sessionId": "abc"})
    data = resp.get_json()["data"]
    assert data["collectedData"]["cash"] == "9000"
    assert "9000" in data["response"]


def test_missing_session_id_gets_generated(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()

    resp = client.post("/chat/structured", json={"isInitial": True})
    sid = resp.get_json()["data"]["sessionId"]

    assert sid
    resp = client.get(f"/chat/session/structured/{sid}")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["state"]["cursor"] == 0


def test_gateway_failure_returns_error_envelope(scripted_gateway):
    app = _make_app(scripted_gateway([GatewayError("model unavailable")]))
    client = app.test_client()
    client.post("/chat/structured", json={"sessionId": "abc", "isInitial": True})
    for value in ["Ada", "36", "120000", "5000", "80000"]:
        client.post("/chat/structured", json={"message": value, "sessionId": "abc"})

    resp = client.post("/chat/structured", json={"message": "net worth?", "sessionId": "abc"})
    body = resp.get_json()

    assert resp.status_code == 502
    assert body["ok"] is False
    assert body["error"]["code"] == "gateway_error"
    assert body["error"]["message"] == "model unavailable"


def test_blank_structured_answer_is_400(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()
    client.post("/chat/structured", json={"sessionId": "abc", "isInitial": True})

    resp = client.post("/chat/structured", json={"sessionId": "abc"})

    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "missing_message"


def test_tools_turn(scripted_gateway, replies):
    gateway = scripted_gateway([
        replies.tool("store_user_data", {"field": "name", "value": "Ada"}),
        replies.text("Thanks Ada"),
    ])
    client = _make_app(gateway).test_client()

    resp = client.post("/chat/tools", json={"message": "I'm Ada", "sessionId": "t1"})
    data = resp.get_json()["data"]

    assert resp.status_code == 200
    assert data == {"response": "Thanks Ada", "sessionId": "t1", "collectedData": {"name": "Ada"}}


def test_tools_step_limit_from_app_config(scripted_gateway, replies):
    gateway = scripted_gateway([replies.tool("get_collected_data", {}), replies.text("never reached")])
    client = _make_app(gateway, max_tool_steps=1).test_client()

    resp = client.post("/chat/tools", json={"message": "hi", "sessionId": "t1"})

    assert resp.status_code == 200
    assert len(gateway.calls) == 1


def test_modes_use_separate_sessions(scripted_gateway, replies):
    gateway = scripted_gateway([replies.text("Hi!")])
    client = _make_app(gateway).test_client()
    client.post("/chat/structured", json={"sessionId": "same", "isInitial": True})
    client.post("/chat/tools", json={"message": "hello", "sessionId": "same"})

    structured = client.get("/chat/session/structured/same").get_json()["data"]["state"]
    tools = client.get("/chat/session/tools/same").get_json()["data"]["state"]

    assert structured["history_length"] == 1
    assert tools["history_length"] == 2


def test_session_state_unknown(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()
    assert client.get("/chat/session/structured/nope").status_code == 404
    assert client.get("/chat/session/other/nope").status_code == 400


def test_session_reset(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()
    client.post("/chat/structured", json={"sessionId": "abc", "isInitial": True})
    client.post("/chat/structured", json={"message": "Ada", "sessionId": "abc"})

    resp = client.post("/chat/session/reset", json={"sessionId": "abc", "mode": "structured"})
    state = resp.get_json()["data"]["state"]

    assert state["cursor"] == 0
    assert state["collected_data"] == {}
    assert client.post("/chat/session/reset", json={}).status_code == 400


def test_health_and_unknown_route(scripted_gateway):
    client = _make_app(scripted_gateway([])).test_client()

    resp = client.get("/health")
    body = resp.get_json()
    assert body["data"]["status"] == "ok"
    assert body["data"]["catalog_size"] == len(MINIMAL_CATALOG)
    assert resp.headers["X-Request-Id"] == body["request_id"]

    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"

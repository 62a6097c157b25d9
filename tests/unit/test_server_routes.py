# pylint: disable=missing-module-docstring,missing-function-docstring

from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient
from fastapi import WebSocketDisconnect

from config import AppConfig
from observability import logger
from server.app import build_generator_client, create_app


class EchoCompletions:
    async def create(self, *, model: str, messages: list[dict[str, str]]) -> Any:
        content = "Hi there" if messages[0]["content"] == "hello!" else messages[0]["content"].upper()
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )


def make_config(**overrides: Any) -> AppConfig:
    values: dict[str, Any] = {
        "env": "test",
        "log_level": "WARNING",
        "llm_provider": "groq",
        "llm_model": "test-model",
        "llm_timeout_s": 7.0,
        "google_api_key": None,
        "openai_api_key": None,
        "groq_api_key": "gsk-test",
        "enable_json_logs": True,
        "tts_provider": "none",
        "speechmatics_api_key": None,
        "speechmatics_voice": "sarah",
        "auto_speak": True,
    }
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture(name="client")
def _client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    # create_app() configures the process-wide logger; restore it afterwards
    monkeypatch.setattr(logger, "_min_level", logger._LEVELS["INFO"])  # pylint: disable=protected-access
    monkeypatch.setattr(logger, "_json_lines", True)

    app = create_app(make_config())
    app.state.generator_client = SimpleNamespace(chat=SimpleNamespace(completions=EchoCompletions()))
    return TestClient(app)


def receive_snapshot(ws: Any, predicate: Any) -> dict[str, Any]:
    while True:
        msg = ws.receive_json()
        if msg["type"] == "SNAPSHOT" and predicate(msg["state"]):
            return msg["state"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_websocket_session_round_trip(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        init = ws.receive_json()
        assert init["type"] == "SESSION_INIT"

        state = receive_snapshot(ws, lambda s: len(s["messages"]) == 1)
        assert state["messages"][0] == {"text": "Hi there", "is_user": False, "sequence": 0}

        ws.send_json({"type": "USER_TEXT", "text": "ping"})
        state = receive_snapshot(ws, lambda s: len(s["messages"]) == 3)
        assert [m["text"] for m in state["messages"]] == ["Hi there", "ping", "PING"]

        ws.send_json({"type": "CLEAR"})
        state = receive_snapshot(ws, lambda s: not s["messages"])
        assert state["is_speaking"] is False


def test_session_end_closes_socket(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()  # SESSION_INIT
        receive_snapshot(ws, lambda s: len(s["messages"]) == 1)

        ws.send_json({"type": "SESSION_END"})

        msg = ws.receive_json()
        while msg["type"] != "SESSION_ENDED":
            msg = ws.receive_json()
        assert msg["reason"] == "client_request"

        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_create_app_fails_fast_without_credential(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_min_level", logger._LEVELS["INFO"])  # pylint: disable=protected-access

    with pytest.raises(RuntimeError, match="LLM_PROVIDER=groq"):
        create_app(make_config(groq_api_key=None))


def test_generator_client_is_single_attempt() -> None:
    client = build_generator_client(make_config())

    assert client.max_retries == 0
    assert str(client.base_url).rstrip("/") == "https://api.groq.com/openai/v1"
    assert client.timeout == 7.0

"""
Route registration for the chat session API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from session.gateway import SessionGateway


class WebSocketSink:
    """ClientSink over a Starlette WebSocket."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def send_json(self, msg: dict[str, Any]) -> None:
        await self._ws.send_json(msg)

    async def send_bytes(self, payload: bytes) -> None:
        await self._ws.send_bytes(payload)

    async def close(self) -> None:
        await self._ws.close()


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            config=app.state.config,
            client=WebSocketSink(ws),
            generator_client=app.state.generator_client,
        )

        try:
            await gateway.on_ws_connect()

            while not gateway.client_closed:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect()

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])

            # Session ended or the client stopped accepting messages
            await gateway.on_ws_disconnect(reason="client_closed")

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "level": "ERROR",
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

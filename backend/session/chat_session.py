"""
Chat session container.

- Owns the runtime (which owns the authoritative state)
- Owns the session's adapters
- Owned and wired by SessionGateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from orchestrator.runtime import Runtime
    from orchestrator.runtime_context import (
        GeneratorAdapterProtocol,
        SpeakerAdapterProtocol,
    )


@dataclass
class ChatSession:
    """Mutable runtime container for a single chat session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Service adapters (concrete, side-effectful)
    # ------------------------------------------------------------------

    generator: GeneratorAdapterProtocol | None = None
    speaker: SpeakerAdapterProtocol | None = None

    # ------------------------------------------------------------------
    # Outbound control messages (FIFO, drained by the gateway)
    # ------------------------------------------------------------------

    _control_out: deque[dict[str, Any]] = field(default_factory=deque, init=False, repr=False)

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_generator(self, adapter: GeneratorAdapterProtocol) -> None:
        self.generator = adapter

    def attach_speaker(self, adapter: SpeakerAdapterProtocol) -> None:
        self.speaker = adapter

    def attach_runtime(self, runtime: Runtime) -> None:
        """
        Attach the runtime executor.

        Must be called after adapters are attached.
        """
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "age_s": round(time.time() - self.created_at, 3),
        }

    # ------------------------------------------------------------------
    # Control queue
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending control messages.

        Returns a FIFO-ordered tuple; the queue is empty afterwards.
        """
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

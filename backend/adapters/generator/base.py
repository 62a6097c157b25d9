"""
Generator adapter contract.

Purpose:
- Define the interface for single-prompt text generation.
- Enforce run_id versioning at the boundary.
- Keep all orchestration and fallback semantics OUT of the adapter.

Rules:
- No retries.
- No streaming.
- No conversation history: each call is one isolated prompt.
- No knowledge of speech, UI, or state machine.
- Never raise across the boundary: failures become GenerationFailure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationFailure:
    """
    Result marker for a failed generation.

    reason is a short diagnostic string for logs, never shown to the user.
    """
    reason: str


GenerationResult = str | GenerationFailure


class GeneratorAdapter(ABC):
    """
    Abstract base class for generator adapters.

    The adapter is a *dumb pipe*:
    prompt -> vendor -> one terminal event.

    Session responsibilities (NOT here):
    - When to start
    - What prompt to send
    - What to show on failure
    """

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        """
        Perform exactly one generation call.

        Contract:
        - Returns generated text, or GenerationFailure on network, auth,
          timeout, malformed or empty responses.
        - Must NOT raise (except CancelledError on hard reset).
        - Must NOT retry.
        """
        raise NotImplementedError

    @abstractmethod
    async def start_generation(self, *, run_id: int, prompt: str) -> None:
        """
        Schedule generate(prompt) and return immediately.

        Contract:
        - Must emit exactly ONE terminal event:
            - GenerationCompleted(run_id, text)
            OR
            - GenerationFailed(run_id, reason)
        - All emitted events MUST carry the provided run_id.
        """
        raise NotImplementedError

    @abstractmethod
    def force_reset(self) -> None:
        """
        Drop all in-flight calls without emitting events.

        Used only on session teardown.
        """
        raise NotImplementedError

"""
Speaker adapter contract.

This module defines the *interface only*: no turn policy, no retries,
no decisions about when to speak.

Key invariants:
- Run IDs are owned by the session reducer (monotonic). Adapters never
  generate or mutate run IDs.
- The adapter emits speech events; it does not call the reducer or make
  state transitions.
- At most one utterance is active per session. The reducer always stops
  the previous run before starting a new one; the adapter does not rely
  on that and may also stop stragglers itself.
- No audio artifacts are persisted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeakerAdapter(ABC):
    """
    Abstract interface for a speech synthesis backend.

    Implementations are responsible for:
    - Turning text into audible speech (locally, or as PCM for the client)
    - Emitting SpeechDone / SpeechFailed for the run
    - Supporting best-effort stop()

    Non-responsibilities:
    - No is_speaking bookkeeping (the reducer clears it at stop time)
    - No direct interaction with the transcript
    """

    @abstractmethod
    async def speak(self, *, run_id: int, text: str) -> None:
        """
        Schedule playback of text and return immediately.

        Contract:
        - Must emit at most ONE terminal event for run_id:
            - SpeechDone(run_id) when playback finished un-interrupted
            OR
            - SpeechFailed(run_id, reason) on synthesis/engine error
        - After stop(run_id) the adapter MAY stay silent; the session
          does not wait for a terminal event in that case.
        - Must NOT retry.
        - Must NOT block the event loop.
        """
        raise NotImplementedError

    @abstractmethod
    def stop(self, run_id: int) -> None:
        """
        Stop the utterance for run_id as quickly as possible.

        Contract:
        - Idempotent; no-op for unknown or finished runs.
        - Synchronous: safe to call from any reducer command path.
        """
        raise NotImplementedError

    @abstractmethod
    def force_reset(self) -> None:
        """Stop everything and clear internal state (session teardown)."""
        raise NotImplementedError

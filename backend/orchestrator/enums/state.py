"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    Control states for a single chat session.

    IDLE:
        Ready to accept user text.

    AWAITING_RESPONSE:
        Exactly one generator call is in flight. New sends are dropped.

    ENDED:
        Terminal. Reached only on explicit session teardown.
    """

    IDLE = "IDLE"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"
    ENDED = "ENDED"

"""
Run ID container for versioned external services.

Rules:
- Run IDs are monotonic integers.
- They are owned and incremented ONLY by the session reducer.
- Stopping a run never bumps its ID; only starting a new one does.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunIds:
    """
    Immutable container for active run IDs per service.

    Semantics:
    - A value of 0 means "no run has been started yet".
    - Once a run ID is incremented, it is never reused.
    - A completion event is current only if its run_id equals the value here.
    """

    generator: int = 0
    speaker: int = 0

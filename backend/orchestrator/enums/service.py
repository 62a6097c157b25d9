"""
Service enumeration for run-id–versioned external calls.

Rules:
- This enum identifies versioned external services only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how services are started and stopped.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    External, versioned services driven by the session.

    Each service:
    - Has at most one active run at a time
    - Is identified by a monotonically increasing run_id
    """

    GENERATOR = "GENERATOR"
    SPEAKER = "SPEAKER"

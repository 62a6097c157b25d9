"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging

Events may carry a "level" field (DEBUG/INFO/WARNING/ERROR); events without
one are INFO. Events below the configured level are dropped.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

_min_level: int = _LEVELS["INFO"]
_json_lines: bool = True


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def configure(*, level: str = "INFO", json_lines: bool = True) -> None:
    """
    Set the process-wide minimum level and output format.

    Called once at startup from the app factory. Unknown level names
    fall back to INFO.
    """
    global _min_level, _json_lines  # pylint: disable=global-statement
    _min_level = _LEVELS.get(level.upper(), _LEVELS["INFO"])
    _json_lines = json_lines


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Serializes to JSON (or a compact key=value line)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    level = str(event.get("level", "INFO")).upper()
    if _LEVELS.get(level, _LEVELS["INFO"]) < _min_level:
        return

    if not _json_lines:
        _print(_format_plain(event))
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def _format_plain(event: Mapping[str, Any]) -> str:
    head = str(event.get("event_type", "EVENT"))
    rest = " ".join(
        f"{key}={value!r}"
        for key, value in event.items()
        if key != "event_type"
    )
    return f"{head} {rest}".rstrip()

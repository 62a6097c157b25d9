"""Transcript message value."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Message:
    """
    Single transcript entry.

    sequence:
        Position in the current log. Strictly increasing in creation order.
    """
    text: str
    is_user: bool
    sequence: int

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "is_user": self.is_user,
            "sequence": self.sequence,
        }

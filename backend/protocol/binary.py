# backend/protocol/binary.py
"""
Binary framing for speech audio sent to the client.

Server → Client (speech):
    4 bytes  run_id  (u32, little-endian)
    4 bytes  seq_num (u32, little-endian)
    640 bytes PCM16 audio (20ms @ 16kHz mono)

The run_id lets the client drop audio of an utterance that was stopped
(see the AUDIO_STOP control message).

Usage example:

    payload = encode_s2c_frame(
        run_id=speaker_run_id,
        sequence_num=seq,
        pcm_bytes=frame,
    )
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from constants import (
    AUDIO_BYTES_PER_FRAME_PCM,
    S2C_FRAME_BYTES_TOTAL,
    SEQ_NUM_MAX,
    SEQ_NUM_START,
)


# -------------------------
# Exceptions
# -------------------------

class BinaryProtocolError(Exception):
    """Base class for binary protocol errors."""


class InvalidFrameLength(BinaryProtocolError):
    """
    Raised when a binary audio frame does not match the expected byte length.

    The frame is unsafe to process and must be dropped.
    """


class InvalidSequenceNumber(BinaryProtocolError):
    """Raised when a sequence number or run_id is outside the valid range."""


@dataclass(frozen=True)
class SpeechFrame:
    """Decoded server→client speech frame."""
    run_id: int
    sequence_num: int
    pcm_bytes: bytes


# -------------------------
# Low-level helpers
# -------------------------

def _u32_le(value: int) -> bytes:
    return struct.pack("<I", value)


def _read_u32_le(buf: bytes, offset: int = 0) -> int:
    return struct.unpack_from("<I", buf, offset)[0]


def _check_u32(name: str, value: int, minimum: int) -> None:
    if value < minimum or value > SEQ_NUM_MAX:
        raise InvalidSequenceNumber(f"Invalid {name}: {value}")


# -------------------------
# Server → Client (speech)
# -------------------------

def encode_s2c_frame(*, run_id: int, sequence_num: int, pcm_bytes: bytes) -> bytes:
    """Encode one speech frame for the client."""
    if len(pcm_bytes) != AUDIO_BYTES_PER_FRAME_PCM:
        raise InvalidFrameLength(
            f"PCM length {len(pcm_bytes)} != {AUDIO_BYTES_PER_FRAME_PCM}"
        )
    _check_u32("run_id", run_id, 1)
    _check_u32("seq_num", sequence_num, SEQ_NUM_START)

    return _u32_le(run_id) + _u32_le(sequence_num) + pcm_bytes


def decode_s2c_frame(payload: bytes) -> SpeechFrame:
    """Decode a server→client speech frame (client side, tests)."""
    if len(payload) != S2C_FRAME_BYTES_TOTAL:
        raise InvalidFrameLength(
            f"S2C frame length {len(payload)} != {S2C_FRAME_BYTES_TOTAL}"
        )

    run_id = _read_u32_le(payload, 0)
    seq = _read_u32_le(payload, 4)
    _check_u32("run_id", run_id, 1)
    _check_u32("seq_num", seq, SEQ_NUM_START)

    return SpeechFrame(run_id=run_id, sequence_num=seq, pcm_bytes=payload[8:])

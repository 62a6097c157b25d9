"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for behavioral constants of the chat session.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic strings or numbers elsewhere in the codebase.
- Deployment-specific values (keys, models, providers) belong in config.py.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Conversation
# =============================================================================

# Prompt issued once at session start; its reply becomes the first bot message.
GREETING_PROMPT: Final[str] = "hello!"

# Bot message substituted for any failed generation.
FALLBACK_TEXT: Final[str] = "Sorry, something went wrong."

# First sequence number of an (empty or freshly cleared) log.
FIRST_SEQUENCE: Final[int] = 0

# =============================================================================
# Generator
# =============================================================================

# One attempt per call. The SDK default (2) would violate single-attempt policy.
GENERATOR_MAX_RETRIES: Final[int] = 0
GENERATOR_TIMEOUT_S_DEFAULT: Final[float] = 30.0

# =============================================================================
# Speech audio (PCM16 mono @ 16kHz, 20ms frames)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_BYTES_PER_FRAME_PCM: Final[int] = AUDIO_SAMPLES_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES

# Read size for the synthesis HTTP response body.
PROVIDER_CHUNK_SIZE: Final[int] = 4096

# Frames sent ahead of real-time playback (client jitter buffer).
# Speech is done only once every delivered frame has had time to play.
SPEECH_PREBUFFER_FRAMES: Final[int] = 5

# Server → Client speech frame: 4B run_id + 4B seq_num + PCM frame
S2C_RUN_ID_BYTES: Final[int] = 4
S2C_SEQ_NUM_BYTES: Final[int] = 4
S2C_FRAME_BYTES_TOTAL: Final[int] = (
    S2C_RUN_ID_BYTES + S2C_SEQ_NUM_BYTES + AUDIO_BYTES_PER_FRAME_PCM
)

SEQ_NUM_START: Final[int] = 1
SEQ_NUM_MAX: Final[int] = 2**32 - 1  # u32 wraparound

# =============================================================================
# Presentation
# =============================================================================

# Longest prefix of an inbound payload echoed into logs.
LOG_PAYLOAD_PREVIEW_CHARS: Final[int] = 100

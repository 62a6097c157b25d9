"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object
- Resolve the credential for the selected generator provider

Non-responsibilities:
- No session logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import GENERATOR_TIMEOUT_S_DEFAULT


# Provider name -> OpenAI-compatible base URL (None = SDK default).
LLM_BASE_URLS: dict[str, str | None] = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "openai": None,
    "groq": "https://api.groq.com/openai/v1",
}

TTS_PROVIDERS: frozenset[str] = frozenset({"speechmatics", "system", "none"})


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the gateway, which builds one session per connection.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Generator configuration
    # ------------------------------------------------------------------

    llm_provider: str
    llm_model: str
    llm_timeout_s: float
    google_api_key: str | None
    openai_api_key: str | None
    groq_api_key: str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    tts_provider: str
    speechmatics_api_key: str | None
    speechmatics_voice: str
    auto_speak: bool

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def llm_api_key(self) -> str | None:
        """Credential for the selected generator provider."""
        provider = self.llm_provider.lower()
        if provider == "gemini":
            return self.google_api_key
        if provider == "groq":
            return self.groq_api_key
        if provider == "openai":
            return self.openai_api_key
        raise RuntimeError(f"Unknown LLM_PROVIDER: {self.llm_provider}")

    @property
    def llm_base_url(self) -> str | None:
        """OpenAI-compatible endpoint for the selected provider."""
        try:
            return LLM_BASE_URLS[self.llm_provider.lower()]
        except KeyError:
            raise RuntimeError(f"Unknown LLM_PROVIDER: {self.llm_provider}") from None

    def validate(self) -> None:
        """
        Fail fast on configuration that cannot produce a working session.

        Raises:
            RuntimeError naming the offending variable.
        """
        if not self.llm_api_key:
            raise RuntimeError(
                f"API key for LLM_PROVIDER={self.llm_provider} is not set"
            )

        if self.tts_provider not in TTS_PROVIDERS:
            raise RuntimeError(f"Unknown TTS_PROVIDER: {self.tts_provider}")

        if self.tts_provider == "speechmatics" and not self.speechmatics_api_key:
            raise RuntimeError("SPEECHMATICS_API_KEY environment variable not set")

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Missing credentials are left as None; call validate() to enforce them.
        TTS_PROVIDER defaults to speechmatics when its key is set, else none.
        """
        speechmatics_api_key = os.environ.get("SPEECHMATICS_API_KEY")
        default_tts = "speechmatics" if speechmatics_api_key else "none"

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            llm_provider=os.environ.get("LLM_PROVIDER", "gemini").lower(),
            llm_model=os.environ.get("LLM_MODEL", "gemini-2.0-flash"),
            llm_timeout_s=float(
                os.environ.get("LLM_TIMEOUT_S", str(GENERATOR_TIMEOUT_S_DEFAULT))
            ),
            google_api_key=os.environ.get("GOOGLE_API_KEY"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),

            enable_json_logs=_env_flag("ENABLE_JSON_LOGS", "1"),

            tts_provider=os.environ.get("TTS_PROVIDER", default_tts).lower(),
            speechmatics_api_key=speechmatics_api_key,
            speechmatics_voice=os.environ.get("SPEECHMATICS_VOICE", "sarah"),
            auto_speak=_env_flag("AUTO_SPEAK", "1"),
        )

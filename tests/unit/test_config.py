# pylint: disable=missing-module-docstring,missing-function-docstring

from dataclasses import replace

import pytest

from config import AppConfig

_ENV_VARS = (
    "ENV", "LOG_LEVEL", "ENABLE_JSON_LOGS", "LLM_PROVIDER", "LLM_MODEL",
    "LLM_TIMEOUT_S", "GOOGLE_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY",
    "TTS_PROVIDER", "SPEECHMATICS_API_KEY", "SPEECHMATICS_VOICE", "AUTO_SPEAK",
)


@pytest.fixture(name="clean_env")
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    config = AppConfig.load_from_env()

    assert config.llm_provider == "gemini"
    assert config.llm_base_url == "https://generativelanguage.googleapis.com/v1beta/openai/"
    assert config.llm_api_key is None
    assert config.tts_provider == "none"
    assert config.auto_speak is True
    assert config.enable_json_logs is True


def test_provider_selects_credential_and_endpoint(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("LLM_PROVIDER", "Groq")
    clean_env.setenv("GROQ_API_KEY", "gsk-test")
    clean_env.setenv("GOOGLE_API_KEY", "google-test")

    config = AppConfig.load_from_env()

    assert config.llm_api_key == "gsk-test"
    assert config.llm_base_url == "https://api.groq.com/openai/v1"


def test_openai_provider_uses_sdk_default_endpoint(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("LLM_PROVIDER", "openai")
    clean_env.setenv("OPENAI_API_KEY", "sk-test")

    config = AppConfig.load_from_env()

    assert config.llm_api_key == "sk-test"
    assert config.llm_base_url is None


def test_flags_parse(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("AUTO_SPEAK", "off")
    clean_env.setenv("ENABLE_JSON_LOGS", "0")
    clean_env.setenv("LLM_TIMEOUT_S", "5")

    config = AppConfig.load_from_env()

    assert config.auto_speak is False
    assert config.enable_json_logs is False
    assert config.llm_timeout_s == 5.0


def test_validate_requires_selected_credential(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TTS_PROVIDER", "none")
    config = AppConfig.load_from_env()

    with pytest.raises(RuntimeError, match="LLM_PROVIDER=gemini"):
        config.validate()

    replace(config, google_api_key="g").validate()


def test_validate_rejects_unknown_providers(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("GOOGLE_API_KEY", "g")
    clean_env.setenv("TTS_PROVIDER", "speechmatics")
    config = AppConfig.load_from_env()

    with pytest.raises(RuntimeError, match="SPEECHMATICS_API_KEY"):
        config.validate()

    with pytest.raises(RuntimeError, match="TTS_PROVIDER"):
        replace(config, tts_provider="robot").validate()

    with pytest.raises(RuntimeError, match="LLM_PROVIDER"):
        replace(config, llm_provider="acme").validate()


def test_generator_key_alone_is_a_valid_deployment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("GOOGLE_API_KEY", "g")

    config = AppConfig.load_from_env()
    config.validate()

    assert config.tts_provider == "none"


def test_speechmatics_is_default_when_its_key_is_set(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("GOOGLE_API_KEY", "g")
    clean_env.setenv("SPEECHMATICS_API_KEY", "sm")

    config = AppConfig.load_from_env()
    config.validate()

    assert config.tts_provider == "speechmatics"

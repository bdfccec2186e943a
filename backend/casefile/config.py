"""Configuration management for casefile.

Loads environment variables from ~/.casefile/.env and provides factory
functions for the extraction model, provider credentials, port settings,
and base paths.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_PORT: int = 8395
DEFAULT_PROVIDER: str = "anthropic"
DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-haiku-4-5",
    "openai": "gpt-4o",
    "bedrock": "anthropic.claude-sonnet-4-20250514-v1:0",
}
DEFAULT_SEC_USER_AGENT: str = "casefile research@casefile.local"

DIR_DOCUMENTS: str = "documents"
DIR_SUBJECTS: str = "subjects"

ENV_FILENAME: str = ".env"

# Minimum spacing between breach-database calls, in seconds.
BREACH_MIN_INTERVAL: float = 1.5
# Debounce window for profile autosave, in seconds.
AUTOSAVE_DELAY: float = 1.5
DEFAULT_PROVIDER_TIMEOUT: float = 20.0


def get_base_dir() -> Path:
    override = os.getenv("CASEFILE_HOME")
    if override:
        return Path(override).expanduser()
    return Path("~/.casefile").expanduser()


def get_port() -> int:
    return int(_get_number("CASEFILE_PORT", DEFAULT_PORT))


_env_loaded: bool = False


def _ensure_env_loaded() -> None:
    global _env_loaded
    if _env_loaded:
        return
    env_path = get_base_dir() / ENV_FILENAME
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    _env_loaded = True


def reload_env() -> None:
    global _env_loaded
    _env_loaded = False
    _ensure_env_loaded()


def _get_secret(name: str) -> str | None:
    _ensure_env_loaded()
    value = os.getenv(name, "").strip()
    return value or None


def _get_number(name: str, default: float) -> float:
    """Numeric setting from the environment; unparsable values fall back to *default*."""
    raw = _get_secret(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_hibp_api_key() -> str | None:
    return _get_secret("HIBP_API_KEY")


def get_mapbox_token() -> str | None:
    return _get_secret("MAPBOX_TOKEN")


def get_github_token() -> str | None:
    return _get_secret("GITHUB_TOKEN")


def get_sec_user_agent() -> str:
    return _get_secret("SEC_USER_AGENT") or DEFAULT_SEC_USER_AGENT


def get_provider_timeout() -> float:
    """Upper bound, in seconds, for any single external provider call."""
    return float(_get_number("CASEFILE_PROVIDER_TIMEOUT", DEFAULT_PROVIDER_TIMEOUT))


def get_model():
    """Return a Strands model instance based on the configured provider."""
    _ensure_env_loaded()
    provider = os.getenv("CASEFILE_MODEL_PROVIDER", DEFAULT_PROVIDER).lower().strip()
    if provider not in DEFAULT_MODELS:
        raise ValueError(
            f"Unknown model provider: {provider!r}. "
            f"Supported providers: {', '.join(DEFAULT_MODELS)}."
        )
    model_id = os.getenv("CASEFILE_MODEL_ID", "").strip() or DEFAULT_MODELS[provider]

    if provider == "anthropic":
        from strands.models.anthropic import AnthropicModel
        # Extraction answers are large JSON documents.
        return AnthropicModel(model_id=model_id, max_tokens=8000)

    if provider == "openai":
        from strands.models.openai import OpenAIModel
        return OpenAIModel(model_id=model_id)

    from strands.models.bedrock import BedrockModel
    return BedrockModel(model_id=model_id)

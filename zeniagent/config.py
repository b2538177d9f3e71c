import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _as_float(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    reasoning_llm_provider: str
    reasoning_llm_model: str
    reasoning_llm_api_key: str | None
    reasoning_llm_api_base_url: str | None
    reasoning_llm_timeout_seconds: int
    reasoning_llm_max_tokens: int
    reasoning_llm_temperature: float
    reasoning_history_messages: int
    assistant_name: str
    workspace_seed_path: str | None
    log_level: str
    log_json: bool


def load_settings() -> Settings:
    # Called again on explicit reload, so .env edits are picked up without a restart.
    load_dotenv(override=False)
    return Settings(
        reasoning_llm_provider=os.getenv("REASONING_LLM_PROVIDER", "openai").strip().lower(),
        reasoning_llm_model=os.getenv("REASONING_LLM_MODEL") or "gpt-4o",
        reasoning_llm_api_key=(
            os.getenv("REASONING_LLM_API_KEY") or os.getenv("OPENAI_API_KEY") or None
        ),
        reasoning_llm_api_base_url=(os.getenv("REASONING_LLM_API_BASE_URL") or None),
        reasoning_llm_timeout_seconds=max(
            1,
            min(120, _as_int(os.getenv("REASONING_LLM_TIMEOUT_SECONDS"), 20)),
        ),
        reasoning_llm_max_tokens=max(
            64,
            _as_int(os.getenv("REASONING_LLM_MAX_TOKENS"), 4000),
        ),
        reasoning_llm_temperature=max(
            0.0,
            min(2.0, _as_float(os.getenv("REASONING_LLM_TEMPERATURE"), 0.7)),
        ),
        reasoning_history_messages=max(
            2,
            min(100, _as_int(os.getenv("REASONING_HISTORY_MESSAGES"), 20)),
        ),
        assistant_name=(os.getenv("ASSISTANT_NAME") or "Zai").strip(),
        workspace_seed_path=(os.getenv("WORKSPACE_SEED_PATH") or None),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        log_json=_as_bool(os.getenv("LOG_JSON"), False),
    )


settings = load_settings()

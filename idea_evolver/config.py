"""
Environment-level settings, read once at startup.

Everything here is plain scalar configuration; business modules receive a
Settings instance through their constructors and never read os.environ.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str = "mock"
    fallback_provider: Optional[str] = None
    model: Optional[str] = None

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"

    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "x-ai/grok-4-fast:free"
    openrouter_url: str = "https://openrouter.ai/api/v1"

    hf_api_key: Optional[str] = None
    hf_model: str = "openai/gpt-oss-20b"
    hf_url: str = "https://router.huggingface.co/v1"

    ollama_url: str = "http://localhost:11434/api/chat"
    ollama_model: str = "llama3.2"

    request_timeout: float = 30.0
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    max_concurrent_tasks: int = 3
    inter_task_delay: float = 0.1
    circuit_failure_threshold: int = 5
    circuit_cooldown_seconds: float = 60.0
    execution_mode: str = "parallel"
    log_level: str = "INFO"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def load_settings() -> Settings:
    """Build Settings from the process environment (and .env, if present)."""
    ollama_host = _env("OLLAMA_HOST", "http://localhost:11434")

    return Settings(
        provider=_env("LLM_PROVIDER", "mock").lower(),
        fallback_provider=(_env("LLM_FALLBACK_PROVIDER") or "").lower() or None,
        model=_env("LLM_MODEL"),
        openai_api_key=_env("OPENAI_API_KEY"),
        openai_model=_env("OPENAI_MODEL", "gpt-4.1-mini"),
        openrouter_api_key=_env("OPENROUTER_API_KEY"),
        openrouter_model=_env("OPENROUTER_MODEL", "x-ai/grok-4-fast:free"),
        hf_api_key=_env("HF_API_KEY"),
        hf_model=_env("HF_MODEL", "openai/gpt-oss-20b"),
        ollama_url=_env("OLLAMA_URL", f"{ollama_host}/api/chat"),
        ollama_model=_env("OLLAMA_MODEL", "llama3.2"),
        request_timeout=float(_env("LLM_REQUEST_TIMEOUT", "30")),
        retry_attempts=int(_env("LLM_RETRY_ATTEMPTS", "3")),
        retry_base_delay=float(_env("LLM_RETRY_BASE_DELAY", "1.0")),
        max_concurrent_tasks=int(_env("LLM_MAX_CONCURRENT_TASKS", "3")),
        inter_task_delay=float(_env("LLM_INTER_TASK_DELAY", "0.1")),
        circuit_failure_threshold=int(_env("CIRCUIT_FAILURE_THRESHOLD", "5")),
        circuit_cooldown_seconds=float(_env("CIRCUIT_COOLDOWN_SECONDS", "60")),
        execution_mode=_env("EXECUTION_MODE", "parallel").lower(),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )

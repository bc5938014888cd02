import os
from typing import Any, Dict

OLLAMA_LOCAL_BASE_URL = "http://localhost:11434"
DEFAULT_CHAT_MODEL = "llama3"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    return value_str in {"1", "true", "yes", "on"}


def get_env_llm_defaults() -> Dict[str, Any]:
    return {
        "base_url": os.getenv("LOCAL_LLM_BASE_URL", OLLAMA_LOCAL_BASE_URL),
        "chat_model": os.getenv("LOCAL_LLM_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        "timeout_seconds": float(os.getenv("LOCAL_LLM_TIMEOUT_SECONDS", "120")),
        "trace_api_calls": _to_bool(os.getenv("TRACE_API_CALLS", "true")),
    }

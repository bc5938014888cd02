import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

from survey_python_backend.errors import GatewayError
from survey_python_backend.services.llm_config import get_env_llm_defaults

logger = logging.getLogger("survey_backend")

_CLIENT_CACHE: Dict[Tuple[str, float, bool], "LocalLLMClient"] = {}
API_LOG_PREVIEW_CHARS = int(os.getenv("API_LOG_PREVIEW_CHARS", "280"))

CHAT_FAILED_MESSAGE = "Chat failed"


def _preview_text(value: Any, limit: int = API_LOG_PREVIEW_CHARS) -> str:
    text = str(value or "")
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...<truncated {len(text) - limit} chars>"


def extract_reply_text(payload: Any) -> str:
    """Pull ``message.content`` out of an Ollama ``/api/chat`` response body."""
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    message = payload.get("message")
    if not isinstance(message, dict):
        raise ValueError("Response has no 'message' object")
    content = message.get("content")
    if not isinstance(content, str):
        raise ValueError("Response 'message.content' is not a string")
    return content


def get_local_client(config: Optional[Dict[str, Any]] = None) -> "LocalLLMClient":
    resolved = config or get_env_llm_defaults()
    base_url = str(resolved.get("base_url", "")).rstrip("/")
    timeout = float(resolved.get("timeout_seconds", 120))
    trace = bool(resolved.get("trace_api_calls", True))

    key = (base_url, timeout, trace)
    if key not in _CLIENT_CACHE:
        _CLIENT_CACHE[key] = LocalLLMClient(
            base_url,
            model=resolved.get("chat_model", "llama3"),
            timeout_seconds=timeout,
            trace_api_calls=trace,
        )
    return _CLIENT_CACHE[key]


class LocalLLMClient:
    """Request/response client for a locally hosted Ollama chat endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str = "llama3",
        timeout_seconds: float = 120,
        trace_api_calls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.trace_api_calls = trace_api_calls
        self._transport = transport

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
        """
        Send the whole turn sequence and return the reply text.

        Raises GatewayError on transport failures, non-2xx responses and
        bodies without ``message.content``. There is no retry.
        """
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "stream": False,
        }

        url = f"{self.base_url}/api/chat"
        if self.trace_api_calls:
            logger.info(
                "[LLM API] POST %s model=%s messages=%s",
                url,
                payload["model"],
                len(messages or []),
            )
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            try:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                if self.trace_api_calls:
                    logger.info(
                        "[LLM API] %s status=%s preview=%s",
                        url,
                        response.status_code,
                        _preview_text(response.text),
                    )
                return extract_reply_text(response.json())
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "[LLM API] %s returned %s: %s",
                    url,
                    exc.response.status_code,
                    _preview_text(exc.response.text),
                )
                raise GatewayError(CHAT_FAILED_MESSAGE) from exc
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.error("[LLM API] %s transport error: %r", url, exc)
                raise GatewayError(CHAT_FAILED_MESSAGE) from exc
            except ValueError as exc:
                # json.JSONDecodeError is a ValueError too
                logger.error("[LLM API] %s malformed response: %s", url, exc)
                raise GatewayError(CHAT_FAILED_MESSAGE) from exc

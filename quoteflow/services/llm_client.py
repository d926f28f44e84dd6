import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from quoteflow.core.config import get_settings
from quoteflow.models.integration import Integration

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-2.5-flash",
}

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
GOOGLE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class LLMError(RuntimeError):
    pass


def _openai(client: httpx.Client, model: str, api_key: str, prompt: str, max_tokens: int) -> str:
    resp = client.post(
        OPENAI_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json={"model": model, "messages": [{"role": "user", "content": prompt}], "max_tokens": max_tokens},
    )
    resp.raise_for_status()
    choices = resp.json().get("choices") or []
    text = (choices[0].get("message") or {}).get("content") if choices else None
    if not text:
        raise LLMError("Empty OpenAI response")
    return text


def _anthropic(client: httpx.Client, model: str, api_key: str, prompt: str, max_tokens: int) -> str:
    resp = client.post(
        ANTHROPIC_URL,
        headers={"x-api-key": api_key, "anthropic-version": "2023-06-01"},
        json={"model": model, "max_tokens": max_tokens, "messages": [{"role": "user", "content": prompt}]},
    )
    resp.raise_for_status()
    for block in resp.json().get("content") or []:
        if block.get("type") == "text" and block.get("text"):
            return block["text"]
    raise LLMError("Empty Anthropic response")


def _google(client: httpx.Client, model: str, api_key: str, prompt: str, max_tokens: int) -> str:
    resp = client.post(
        GOOGLE_URL.format(model=model),
        params={"key": api_key},
        json={
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        },
    )
    resp.raise_for_status()
    candidates = resp.json().get("candidates") or []
    parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
    text = "".join(p.get("text", "") for p in parts)
    if not text:
        raise LLMError("Empty Google response")
    return text


_CALLERS = {
    "openai": _openai,
    "anthropic": _anthropic,
    "google": _google,
}


def complete(
    provider: str,
    model: str,
    api_key: str,
    prompt: str,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """Send the prompt as a single user turn and return the text reply."""
    key = (api_key or "").strip()
    if not key:
        raise LLMError("Missing API key")

    provider = (provider or "").strip().lower()
    caller = _CALLERS.get(provider)
    if caller is None:
        raise LLMError(f"Unsupported LLM provider: {provider}")

    settings = get_settings()
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=settings.http_timeout_seconds)

    try:
        return caller(client, model or DEFAULT_MODELS[provider], key, prompt, settings.llm_max_tokens)
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "Model request rejected",
            extra={"provider": provider, "status_code": exc.response.status_code},
        )
        raise LLMError(f"{provider} returned HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        logger.warning("Model request failed", extra={"provider": provider, "error": str(exc)})
        raise LLMError(f"{provider} request failed: {exc}") from exc
    finally:
        if owns_client:
            client.close()


def resolve_api_key(db: Session, account_id: int, provider: str) -> Optional[str]:
    row = (
        db.query(Integration)
        .filter(Integration.account_id == int(account_id), Integration.integration_type == provider)
        .first()
    )
    config = (row.config if row is not None else None) or {}
    key = str(config.get("apiKey") or "").strip()
    return key or None

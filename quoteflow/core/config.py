import os
from dataclasses import dataclass
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip() not in {"0", "false", "False", "no", "NO", ""}


@dataclass(frozen=True)
class Settings:
    env: str
    public_base_url: str
    document_storage_dir: Path
    document_url_ttl_seconds: int
    resend_api_url: str
    http_timeout_seconds: float
    default_llm_provider: str
    llm_max_tokens: int
    expose_dev_token_endpoint: bool


def get_settings() -> Settings:
    """Read settings from the environment on every call so tests can monkeypatch."""
    env = os.getenv("ENV", "dev").lower()
    return Settings(
        env=env,
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        document_storage_dir=Path(os.getenv("DOCUMENT_STORAGE_DIR", "./storage/documents")),
        document_url_ttl_seconds=_env_int("DOCUMENT_URL_TTL_SECONDS", 3600),
        resend_api_url=os.getenv("RESEND_API_URL", "https://api.resend.com/emails"),
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 30.0),
        default_llm_provider=os.getenv("DEFAULT_LLM_PROVIDER", "openai").strip().lower(),
        llm_max_tokens=_env_int("LLM_MAX_TOKENS", 1024),
        expose_dev_token_endpoint=_env_bool("DEV_TOKEN_ENDPOINT", env in {"dev", "local", "test"}),
    )

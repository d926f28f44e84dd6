from datetime import datetime, timedelta, timezone
import os

import jwt

JWT_ALGORITHM = "HS256"
JWT_EXP_HOURS = 8

DOCUMENT_TOKEN_PURPOSE = "document"


def _get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET is required")
    if len(secret) < 32:
        raise ValueError("JWT_SECRET must be at least 32 characters")
    return secret


def create_access_token(user_id: str, account_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "account_id": int(account_id),
        "exp": now + timedelta(hours=JWT_EXP_HOURS),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except Exception as exc:
        raise ValueError("Invalid or expired token") from exc

    if "sub" not in payload or "account_id" not in payload:
        raise ValueError("Invalid token claims")

    return payload


def create_document_token(storage_path: str, ttl_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "purpose": DOCUMENT_TOKEN_PURPOSE,
        "path": storage_path,
        "exp": now + timedelta(seconds=int(ttl_seconds)),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_document_token(token: str) -> str:
    """Return the storage path the token grants access to."""
    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except Exception as exc:
        raise ValueError("Invalid or expired download link") from exc

    if payload.get("purpose") != DOCUMENT_TOKEN_PURPOSE or not payload.get("path"):
        raise ValueError("Invalid download link")

    return str(payload["path"])

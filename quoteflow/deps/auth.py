from typing import Tuple

from fastapi import HTTPException, Request

from quoteflow.services.auth_service import verify_token


def _parse_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    return parts[1].strip()


def require_auth(request: Request) -> Tuple[str, int]:
    """X-Account-Id must equal the token's account_id claim, so a token issued for one account cannot act on another."""
    token = _parse_bearer_token(request)

    try:
        claims = verify_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user_id = str(claims.get("sub"))
    token_account_id = int(claims.get("account_id"))

    header_account_id = request.headers.get("X-Account-Id")
    if header_account_id is None:
        raise HTTPException(status_code=403, detail="Missing X-Account-Id header")

    try:
        header_account_id_int = int(header_account_id)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail="Invalid X-Account-Id header") from exc

    if header_account_id_int != token_account_id:
        raise HTTPException(status_code=403, detail="Account mismatch")

    request.state.user_id = user_id
    request.state.account_id = token_account_id

    return user_id, token_account_id

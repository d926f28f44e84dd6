from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from quoteflow.core.config import get_settings
from quoteflow.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenRequest(BaseModel):
    user_id: str
    account_id: int


@router.post("/token")
def issue_token(payload: TokenRequest):
    if not get_settings().expose_dev_token_endpoint:
        raise HTTPException(status_code=404, detail="Not Found")
    try:
        token = create_access_token(user_id=str(payload.user_id), account_id=int(payload.account_id))
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "access_token": token,
        "token_type": "bearer",
    }

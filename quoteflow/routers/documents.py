from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from quoteflow.services.auth_service import verify_document_token
from quoteflow.services.document_service import resolve_storage_path

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.get("/{token}")
def download_document(token: str):
    try:
        storage_path = verify_document_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc

    path = resolve_storage_path(storage_path)
    if path is None:
        raise HTTPException(status_code=403, detail="Invalid download link")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Document not found")

    return FileResponse(path, media_type="text/html", filename=path.name)

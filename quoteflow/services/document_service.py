import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from quoteflow.core.config import get_settings
from quoteflow.services.auth_service import create_document_token
from quoteflow.services.run_types import ContactInfo
from quoteflow.services.templating import render_document_html

logger = logging.getLogger(__name__)

QUOTE_VALID_DAYS = 30


@dataclass(frozen=True)
class DocumentResult:
    url: Optional[str] = None
    storage_path: Optional[str] = None
    error: Optional[str] = None


def _safe_customer_name(contact: ContactInfo) -> str:
    raw = contact.name or contact.email or "Customer"
    return re.sub(r"[^a-zA-Z0-9_-]", "", re.sub(r"\s+", "_", raw)) or "Customer"


def signed_document_url(storage_path: str) -> str:
    settings = get_settings()
    token = create_document_token(storage_path, settings.document_url_ttl_seconds)
    return f"{settings.public_base_url}/documents/{token}"


def resolve_storage_path(storage_path: str) -> Optional[Path]:
    """Map a stored reference back onto disk, refusing anything outside the storage root."""
    root = get_settings().document_storage_dir.resolve()
    candidate = (root / storage_path).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    return candidate


class QuoteDocumentGenerator:
    """Render a quote document for one contact and store it under a scope folder."""

    def __init__(self, scope: str, *, storage_dir: Optional[Path] = None, now=None) -> None:
        self.scope = re.sub(r"[^a-zA-Z0-9_-]", "", scope or "") or "shared"
        self.storage_dir = storage_dir
        self._now = now

    def __call__(self, contact: ContactInfo, measurement: float) -> DocumentResult:
        return self.generate(contact, measurement)

    def generate(self, contact: ContactInfo, measurement: float) -> DocumentResult:
        now = self._now() if self._now is not None else datetime.now(timezone.utc)
        storage_dir = self.storage_dir or get_settings().document_storage_dir

        html = render_document_html(
            customer_name=contact.name or "",
            customer_email=contact.email or "",
            customer_phone=contact.phone or "",
            address=contact.address or "",
            measurement=max(0.0, float(measurement)),
            quote_date=now.date().isoformat(),
            valid_until=(now + timedelta(days=QUOTE_VALID_DAYS)).date().isoformat(),
        )

        storage_path = (
            f"{self.scope}/quote_{_safe_customer_name(contact)}_"
            f"{now.strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex}.html"
        )
        target = Path(storage_dir) / storage_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(html, encoding="utf-8")
        except OSError as exc:
            logger.exception("Failed to store quote document", extra={"storage_path": storage_path})
            return DocumentResult(error=str(exc) or "Document upload failed")

        try:
            url = signed_document_url(storage_path)
        except ValueError as exc:
            return DocumentResult(error=str(exc))

        return DocumentResult(url=url, storage_path=storage_path)

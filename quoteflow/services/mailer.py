import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from quoteflow.core.config import get_settings
from quoteflow.core.logging import redact_email
from quoteflow.models.integration import Integration

logger = logging.getLogger(__name__)

DEFAULT_FROM_EMAIL = "onboarding@resend.dev"

_NEEDS_VERIFIED_DOMAIN = re.compile(
    r"only send testing emails to your own|verify a domain|change the .*from.*address to an email using this domain",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class EmailSendResult:
    sent: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class ResendMailer:
    """Send HTML e-mail through the Resend HTTP API with one account's key."""

    def __init__(
        self,
        api_key: str,
        *,
        from_email: Optional[str] = None,
        from_name: str = "Quote",
        api_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key
        self.from_email = (from_email or "").strip() or DEFAULT_FROM_EMAIL
        self.from_name = from_name
        self.api_url = api_url or settings.resend_api_url
        self._client = client
        self._timeout = settings.http_timeout_seconds

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email

    def send(self, to_address: str, subject: str, html_body: str) -> EmailSendResult:
        to = (to_address or "").strip().lower()
        if not to:
            return EmailSendResult(sent=False, error="Missing recipient email")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": (subject or "").strip() or "Your quote",
            "html": html_body,
        }
        if self.from_email != DEFAULT_FROM_EMAIL:
            payload["reply_to"] = self.from_email

        client = self._client or httpx.Client(timeout=self._timeout)
        try:
            resp = client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Email provider request failed", extra={"to": redact_email(to), "error": str(exc)})
            return EmailSendResult(sent=False, error=str(exc) or "Failed to send email")
        finally:
            if self._client is None:
                client.close()

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            message = (data.get("message") if isinstance(data, dict) else None) or f"HTTP {resp.status_code}"
            if _NEEDS_VERIFIED_DOMAIN.search(message):
                message = (
                    "To send emails to customers, set the From email of your Resend integration "
                    "to an address on your verified domain."
                )
            return EmailSendResult(sent=False, error=message)

        message_id = data.get("id") if isinstance(data, dict) else None
        if not message_id:
            return EmailSendResult(sent=False, error="No message id returned")

        logger.info("Email sent", extra={"to": redact_email(to), "message_id": message_id})
        return EmailSendResult(sent=True, message_id=message_id)


def get_mailer_for_account(db: Session, account_id: int, *, client: Optional[httpx.Client] = None) -> Optional[ResendMailer]:
    row = (
        db.query(Integration)
        .filter(Integration.account_id == int(account_id), Integration.integration_type == "resend")
        .first()
    )
    config = (row.config if row is not None else None) or {}
    api_key = str(config.get("apiKey") or "").strip()
    if not api_key:
        return None
    return ResendMailer(
        api_key,
        from_email=config.get("fromEmail"),
        from_name=str(config.get("fromName") or "Quote"),
        client=client,
    )

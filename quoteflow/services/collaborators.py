from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from quoteflow.core.config import get_settings
from quoteflow.services import llm_client
from quoteflow.services.document_service import DocumentResult, QuoteDocumentGenerator
from quoteflow.services.mailer import EmailSendResult, get_mailer_for_account
from quoteflow.services.run_types import ContactInfo

GenerateDocument = Callable[[ContactInfo, float], DocumentResult]
SendEmail = Callable[[str, str, str], EmailSendResult]
Complete = Callable[[str, str, str, str], str]
ResolveApiKey = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class Collaborators:
    generate_document: GenerateDocument
    send_email: SendEmail
    complete: Complete
    resolve_api_key: ResolveApiKey
    default_llm_provider: str = "openai"
    sender_name: str = ""


def _no_mailer(_to: str, _subject: str, _html: str) -> EmailSendResult:
    return EmailSendResult(sent=False, error="No mailing integration connected")


def default_collaborators(db: Session, account_id: int, *, scope: Optional[str] = None) -> Collaborators:
    """Wire the real document store, mail provider and model endpoints for one account."""
    mailer = get_mailer_for_account(db, account_id)

    return Collaborators(
        generate_document=QuoteDocumentGenerator(scope or str(account_id)),
        send_email=mailer.send if mailer is not None else _no_mailer,
        complete=llm_client.complete,
        resolve_api_key=lambda provider: llm_client.resolve_api_key(db, account_id, provider),
        default_llm_provider=get_settings().default_llm_provider,
        sender_name=mailer.from_name if mailer is not None else "",
    )

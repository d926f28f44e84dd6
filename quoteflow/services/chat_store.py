from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quoteflow.models.conversation import Conversation, ConversationMessage


@dataclass(frozen=True)
class InsertResult:
    ok: bool
    error: Optional[str] = None


def find_conversation_for_contact(db: Session, contact_id: str) -> Optional[str]:
    if not contact_id:
        return None
    row = (
        db.query(Conversation)
        .filter(Conversation.contact_id == contact_id)
        .order_by(Conversation.created_at.desc())
        .first()
    )
    return None if row is None else row.id


def insert_assistant_message(db: Session, conversation_id: str, content: str) -> InsertResult:
    if db.query(Conversation).filter_by(id=conversation_id).first() is None:
        return InsertResult(ok=False, error="Conversation not found")

    try:
        db.add(ConversationMessage(conversation_id=conversation_id, role="assistant", content=content))
        db.flush()
    except SQLAlchemyError as exc:
        return InsertResult(ok=False, error=str(exc))

    return InsertResult(ok=True)

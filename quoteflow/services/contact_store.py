import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from quoteflow.database import SessionLocal
from quoteflow.models.contact import Contact


def _normalize_tag(tag: str) -> str:
    return (tag or "").strip()


def get_contact(db: Session, contact_id: str) -> Optional[Contact]:
    return db.query(Contact).filter_by(id=contact_id).first()


def get_contact_for_conversation(db: Session, conversation_id: str) -> Optional[Contact]:
    if not conversation_id:
        return None
    return (
        db.query(Contact)
        .filter(Contact.conversation_id == conversation_id)
        .order_by(Contact.created_at.desc())
        .first()
    )


def update_contact_tags(contact_id: str, tags: List[str], *, db: Optional[Session] = None) -> None:
    """
    Replace the contact's tag list.

    If db is provided, the caller owns the transaction; otherwise this commits.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        contact = get_contact(db, contact_id)
        if contact is None:
            raise ValueError("Contact not found")

        contact.tags = list(tags)
        db.flush()

        if owns_db:
            db.commit()
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def add_tag(contact_id: str, tag: str, *, db: Optional[Session] = None) -> bool:
    """
    Add a tag with set semantics. Returns True when the tag was not present.

    Read-modify-write: the current list is compared before any write, so
    adding a tag the contact already carries issues no update at all.
    """
    tag = _normalize_tag(tag)
    if not tag:
        raise ValueError("Tag name is required")

    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        contact = get_contact(db, contact_id)
        if contact is None:
            raise ValueError("Contact not found")

        current = list(contact.tags or [])
        if tag in current:
            return False

        update_contact_tags(contact_id, current + [tag], db=db)

        if owns_db:
            db.commit()
        return True
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def append_document_reference(contact_id: str, ref: str, *, db: Optional[Session] = None) -> None:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        contact = get_contact(db, contact_id)
        if contact is None:
            raise ValueError("Contact not found")

        documents = list(contact.documents or [])
        if ref not in documents:
            documents.append(ref)
            contact.documents = documents
            db.flush()

        if owns_db:
            db.commit()
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def upsert_contact_by_email(
    db: Session,
    *,
    account_id: int,
    email: str,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    widget_id: Optional[str] = None,
) -> Contact:
    """Find the account's contact by e-mail or create it; only non-empty fields overwrite."""
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("Email is required")

    contact = (
        db.query(Contact)
        .filter(Contact.account_id == int(account_id), Contact.email == email)
        .order_by(Contact.created_at.asc())
        .first()
    )

    if contact is None:
        contact = Contact(
            id=str(uuid.uuid4()),
            account_id=int(account_id),
            widget_id=widget_id,
            email=email,
            tags=[],
            documents=[],
        )
        db.add(contact)

    if name:
        contact.name = name
    if phone:
        contact.phone = phone
    if address:
        contact.address = address
    if widget_id and not contact.widget_id:
        contact.widget_id = widget_id

    db.flush()
    return contact

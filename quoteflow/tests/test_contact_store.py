import pytest

from quoteflow.database import SessionLocal
from quoteflow.models.contact import Contact
from quoteflow.services import contact_store


def _tags(contact_id):
    db = SessionLocal()
    try:
        return db.query(Contact).filter_by(id=contact_id).one().tags
    finally:
        db.close()


def test_add_tag_is_idempotent_across_calls(contact_factory):
    contact = contact_factory(tags=["lead"])

    assert contact_store.add_tag(contact.id, "vip") is True
    assert contact_store.add_tag(contact.id, " vip ") is False

    assert _tags(contact.id) == ["lead", "vip"]


def test_add_tag_rejects_blank_and_unknown_contact(contact_factory):
    contact = contact_factory()
    with pytest.raises(ValueError):
        contact_store.add_tag(contact.id, "   ")
    with pytest.raises(ValueError):
        contact_store.add_tag("missing", "vip")


def test_caller_owned_session_is_not_committed(contact_factory):
    contact = contact_factory()
    db = SessionLocal()
    try:
        contact_store.add_tag(contact.id, "vip", db=db)
        db.rollback()
    finally:
        db.close()

    assert _tags(contact.id) == []


def test_append_document_reference_skips_duplicates(contact_factory):
    contact = contact_factory()
    contact_store.append_document_reference(contact.id, "w/quote_1.html")
    contact_store.append_document_reference(contact.id, "w/quote_1.html")

    db = SessionLocal()
    try:
        assert db.query(Contact).filter_by(id=contact.id).one().documents == ["w/quote_1.html"]
    finally:
        db.close()


def test_get_contact_for_conversation(contact_factory):
    contact = contact_factory(conversation_id="conv-1")
    db = SessionLocal()
    try:
        assert contact_store.get_contact_for_conversation(db, "conv-1").id == contact.id
        assert contact_store.get_contact_for_conversation(db, "conv-2") is None
    finally:
        db.close()


def test_upsert_contact_by_email_matches_case_insensitively(contact_factory):
    existing = contact_factory(email="jane@x.com", phone="555-0100")
    db = SessionLocal()
    try:
        same = contact_store.upsert_contact_by_email(db, account_id=1, email="JANE@x.com ", name="Jane Q Doe")
        other_account = contact_store.upsert_contact_by_email(db, account_id=2, email="jane@x.com")
        db.commit()

        assert same.id == existing.id
        assert same.name == "Jane Q Doe"
        assert same.phone == "555-0100"
        assert other_account.id != existing.id
        assert other_account.tags == []
    finally:
        db.close()

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from quoteflow.database import SessionLocal
from quoteflow.deps.auth import require_auth
from quoteflow.models.contact import Contact
from quoteflow.schemas.events import (
    AddTagRequest,
    AddTagResponse,
    EmailReceivedRequest,
    EventResponse,
    RunSummary,
)
from quoteflow.services import contact_store
from quoteflow.services.run_types import (
    TRIGGER_TYPE_EMAIL,
    TRIGGER_TYPE_TAG,
    ContactInfo,
    RunContext,
    WorkflowRunResult,
)
from quoteflow.services.triggers import run_email_received, run_tag_added

router = APIRouter(tags=["Events"])


def _summaries(results: List[WorkflowRunResult]) -> List[RunSummary]:
    return [
        RunSummary(
            workflow_id=r.workflow_id,
            execution_id=r.run_id,
            status=r.status,
            error_message=r.error_message,
        )
        for r in results
    ]


@router.post("/events/email-received", response_model=EventResponse)
def email_received(
    payload: EmailReceivedRequest,
    request: Request,
    _auth: tuple[str, int] = Depends(require_auth),
):
    account_id = int(request.state.account_id)

    db = SessionLocal()
    try:
        contact = contact_store.upsert_contact_by_email(
            db,
            account_id=account_id,
            email=payload.from_email,
            name=(payload.from_name or "").strip() or None,
            widget_id=payload.widget_id,
        )
        db.commit()

        context = RunContext(
            trigger_type=TRIGGER_TYPE_EMAIL,
            account_id=account_id,
            contact=ContactInfo.from_model(contact),
            widget_id=payload.widget_id,
            extras={
                "inbound.subject": payload.subject,
                "inbound.body": payload.body,
                "inbound.from": payload.from_email.strip().lower(),
            },
        )
        results = run_email_received(db, account_id, payload.widget_id, context)
        return EventResponse(runs=_summaries(results))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        db.close()


@router.post("/contacts/{contact_id}/tags", response_model=AddTagResponse)
def add_contact_tag(
    contact_id: str,
    payload: AddTagRequest,
    request: Request,
    _auth: tuple[str, int] = Depends(require_auth),
):
    """Apply a tag, then fire tag-added workflows only if the tag is new."""
    account_id = int(request.state.account_id)
    tag = payload.tag.strip()
    if not tag:
        raise HTTPException(status_code=400, detail="Tag is required")

    db = SessionLocal()
    try:
        contact = (
            db.query(Contact)
            .filter(Contact.id == contact_id, Contact.account_id == account_id)
            .first()
        )
        if contact is None:
            raise HTTPException(status_code=404, detail="Contact not found")

        added = contact_store.add_tag(contact.id, tag, db=db)
        db.commit()
        db.refresh(contact)

        results: List[WorkflowRunResult] = []
        if added and contact.widget_id:
            context = RunContext(
                trigger_type=TRIGGER_TYPE_TAG,
                account_id=account_id,
                contact=ContactInfo.from_model(contact),
                widget_id=contact.widget_id,
                conversation_id=contact.conversation_id,
                extras={"tag.name": tag},
            )
            results = run_tag_added(db, account_id, contact.widget_id, tag, context)

        return AddTagResponse(
            contact_id=contact.id,
            tag=tag,
            added=added,
            tags=list(contact.tags or []),
            runs=_summaries(results),
        )
    finally:
        db.close()

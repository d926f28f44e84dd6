import logging

from fastapi import APIRouter, HTTPException

from quoteflow.database import SessionLocal
from quoteflow.models.quote_form import QuoteForm
from quoteflow.schemas.forms import FormSubmitRequest, FormSubmitResponse
from quoteflow.services import contact_store
from quoteflow.services.run_types import TRIGGER_TYPE_FORM, ContactInfo, RunContext
from quoteflow.services.triggers import run_form_submit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["Forms"])


def _clean(value):
    return value.strip() if isinstance(value, str) and value.strip() else None


@router.post("/{form_id}/submit", response_model=FormSubmitResponse)
def submit_form(form_id: str, payload: FormSubmitRequest):
    """Public: upsert the contact, then run the form's live workflow if it has one."""
    email = (payload.email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")

    db = SessionLocal()
    try:
        form = db.query(QuoteForm).filter_by(id=form_id).first()
        if form is None:
            raise HTTPException(status_code=404, detail="Form not found")

        address_parts = [
            _clean(payload.street_address),
            _clean(payload.post_code),
            _clean(payload.city),
            _clean(payload.state),
        ]
        full_address = ", ".join(p for p in address_parts if p) or None

        contact = contact_store.upsert_contact_by_email(
            db,
            account_id=int(form.account_id),
            email=email,
            name=_clean(payload.name),
            phone=_clean(payload.phone),
            address=full_address,
        )
        db.commit()

        measurement = payload.roof_size if payload.roof_size and payload.roof_size > 0 else None
        context = RunContext(
            trigger_type=TRIGGER_TYPE_FORM,
            account_id=int(form.account_id),
            contact=ContactInfo.from_model(contact),
            form_id=form_id,
            measurement=measurement,
        )

        result = run_form_submit(db, form_id, int(form.account_id), context)
        logger.info(
            "Form submitted",
            extra={"form_id": form_id, "contact_id": contact.id, "execution_id": None if result is None else result.run_id},
        )
        document_url = None if result is None else result.document_url

        return FormSubmitResponse(success=True, documentUrl=document_url)
    finally:
        db.close()

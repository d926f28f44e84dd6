from quoteflow.database import SessionLocal
from quoteflow.models.contact import Contact
from quoteflow.models.conversation import ConversationMessage
from quoteflow.services.action_handlers import (
    RunState,
    handle_add_tag,
    handle_generate_document,
    handle_invoke_model,
    handle_send_chat_message,
    handle_send_email,
    handle_unsupported,
)
from quoteflow.services.graph_resolver import parse_node
from quoteflow.services.run_types import ContactInfo, RunContext


def _node(action_type, **data):
    return parse_node({"id": "n1", "type": "action", "data": {"actionType": action_type, **data}})


def _state(db, services, *, contact=None, outputs=None, **context):
    context.setdefault("trigger_type", "form_submit")
    context.setdefault("account_id", 1)
    return RunState(
        context=RunContext(contact=contact or ContactInfo(), **context),
        outputs=outputs or {},
        services=services.bundle(),
        db=db,
    )


def test_generate_document_records_reference_on_contact(contact_factory, fake_services):
    row = contact_factory()
    db = SessionLocal()
    try:
        state = _state(db, fake_services, contact=ContactInfo.from_model(row), measurement=120.0)
        result = handle_generate_document(_node("Generate quote"), state)
        db.commit()

        assert result.status == "success"
        assert result.carry == {"documentUrl": "https://files.example.com/signed/quote-1?token=abc"}
        assert fake_services.documents[0][1] == 120.0
        assert db.query(Contact).filter_by(id=row.id).one().documents == ["widget-1/quote_1.html"]
    finally:
        db.close()


def test_generate_document_skips_when_inputs_missing(fake_services):
    db = SessionLocal()
    try:
        state = _state(db, fake_services, contact=ContactInfo(name="Jane Doe"))
        result = handle_generate_document(_node("Generate quote"), state)
        assert result.status == "skipped"
        assert result.error_message == "Missing contact email, measurement"
        assert fake_services.documents == []
    finally:
        db.close()


def test_generate_document_failure_is_an_error(fake_services):
    fake_services.document_error = "Storage bucket missing"
    db = SessionLocal()
    try:
        contact = ContactInfo(name="Jane Doe", email="jane@x.com")
        result = handle_generate_document(_node("Generate quote"), _state(db, fake_services, contact=contact, measurement=10))
        assert result.status == "error"
        assert result.error_message == "Storage bucket missing"
    finally:
        db.close()


def test_send_email_uses_templates_and_prior_document(fake_services):
    node = _node(
        "Send email",
        emailSubject="Quote for {{contact.first_name}}",
        emailBody="Hi {{contact.first_name}}, [[download it here]].",
    )
    db = SessionLocal()
    try:
        state = _state(
            db,
            fake_services,
            contact=ContactInfo(name="Jane Doe", email="Jane@X.com"),
            outputs={"documentUrl": "https://files.example.com/q1"},
        )
        result = handle_send_email(node, state)

        assert result.status == "success"
        assert result.carry == {"emailSent": True}
        sent = fake_services.emails[0]
        assert sent["to"] == "jane@x.com"
        assert sent["subject"] == "Quote for Jane"
        assert '<a href="https://files.example.com/q1">download it here</a>' in sent["html"]
        assert "Acme Roofing" in sent["html"]
    finally:
        db.close()


def test_send_email_skips_without_recipient_or_body(fake_services):
    db = SessionLocal()
    try:
        no_recipient = handle_send_email(_node("Send email", emailBody="Hi"), _state(db, fake_services))
        assert (no_recipient.status, no_recipient.error_message) == ("skipped", "No recipient email")

        contact = ContactInfo(email="jane@x.com")
        no_body = handle_send_email(_node("Send email"), _state(db, fake_services, contact=contact))
        assert (no_body.status, no_body.error_message) == ("skipped", "Email body is not configured")
        assert fake_services.emails == []
    finally:
        db.close()


def test_send_email_defaults_subject(fake_services):
    db = SessionLocal()
    try:
        contact = ContactInfo(email="jane@x.com")
        handle_send_email(_node("Send email", emailBody="Hello"), _state(db, fake_services, contact=contact))
        assert fake_services.emails[0]["subject"] == "Your quote"
    finally:
        db.close()


def test_send_email_provider_failure_is_an_error(fake_services):
    fake_services.email_error = "Invalid API key"
    db = SessionLocal()
    try:
        contact = ContactInfo(email="jane@x.com")
        result = handle_send_email(_node("Send email", emailBody="Hello"), _state(db, fake_services, contact=contact))
        assert result.status == "error"
        assert result.error_message == "Invalid API key"
        assert result.carry == {"emailSent": False}
    finally:
        db.close()


def test_send_chat_message_finds_conversation_by_contact(contact_factory, conversation_factory, fake_services):
    row = contact_factory()
    conversation = conversation_factory(contact_id=row.id)
    db = SessionLocal()
    try:
        state = _state(
            db,
            fake_services,
            contact=ContactInfo.from_model(row),
            outputs={"documentUrl": "https://files.example.com/q1"},
        )
        result = handle_send_chat_message(_node("Send chat message", message="Here it is: [[quote]]"), state)
        db.commit()

        assert result.status == "success"
        assert result.carry == {"chatMessageSent": True}
        message = db.query(ConversationMessage).filter_by(conversation_id=conversation.id).one()
        assert message.role == "assistant"
        assert message.content == "Here it is: [quote](https://files.example.com/q1)"
    finally:
        db.close()


def test_send_chat_message_without_conversation_is_skipped(fake_services):
    db = SessionLocal()
    try:
        state = _state(db, fake_services, contact=ContactInfo(id="nobody"))
        result = handle_send_chat_message(_node("Send chat message", message="Hello"), state)
        assert (result.status, result.error_message) == ("skipped", "No chat conversation for this contact")
    finally:
        db.close()


def test_send_chat_message_unknown_conversation_is_an_error(fake_services):
    db = SessionLocal()
    try:
        state = _state(db, fake_services, conversation_id="missing")
        result = handle_send_chat_message(_node("Send chat message", message="Hello"), state)
        assert (result.status, result.error_message) == ("error", "Conversation not found")
    finally:
        db.close()


def test_add_tag_reports_whether_tag_was_new(contact_factory, fake_services):
    row = contact_factory(tags=["existing"])
    db = SessionLocal()
    try:
        state = _state(db, fake_services, contact=ContactInfo.from_model(row))
        first = handle_add_tag(_node("Add tag", tagName="hot-lead"), state)
        again = handle_add_tag(_node("Add tag", tagName="existing"), state)
        db.commit()

        assert first.output == {"tag": "hot-lead", "added": True}
        assert again.output == {"tag": "existing", "added": False}
        assert db.query(Contact).filter_by(id=row.id).one().tags == ["existing", "hot-lead"]
    finally:
        db.close()


def test_add_tag_without_contact_is_skipped(fake_services):
    db = SessionLocal()
    try:
        result = handle_add_tag(_node("Add tag", tagName="hot"), _state(db, fake_services))
        assert (result.status, result.error_message) == ("skipped", "No contact to tag")
    finally:
        db.close()


def test_invoke_model_carries_response(fake_services):
    db = SessionLocal()
    try:
        node = _node("AI response", prompt="Reply to {{inbound.subject}}", provider="OpenAI", model="gpt-4o")
        state = _state(db, fake_services, extras={"inbound.subject": "Leaking roof"})
        result = handle_invoke_model(node, state)

        assert result.status == "success"
        assert result.carry == {"aiResponse": "Thanks for reaching out!"}
        assert result.output == {"responseLength": len("Thanks for reaching out!"), "provider": "openai"}
        assert fake_services.prompts == [
            {"provider": "openai", "model": "gpt-4o", "api_key": "sk-test", "prompt": "Reply to Leaking roof"}
        ]
    finally:
        db.close()


def test_invoke_model_without_key_is_skipped(fake_services):
    fake_services.api_keys = {}
    db = SessionLocal()
    try:
        result = handle_invoke_model(_node("AI response", prompt="Hi", provider="anthropic"), _state(db, fake_services))
        assert (result.status, result.error_message) == ("skipped", "No API key configured for anthropic")
        assert fake_services.prompts == []
    finally:
        db.close()


def test_unsupported_action_is_skipped_with_reason(fake_services):
    db = SessionLocal()
    try:
        result = handle_unsupported(_node("Book meeting"), _state(db, fake_services))
        assert (result.status, result.error_message) == ("skipped", "Unsupported action type: Book meeting")
    finally:
        db.close()

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping

from sqlalchemy.orm import Session

from quoteflow.core.logging import redact_email
from quoteflow.models.workflow_graph import (
    KIND_ADD_TAG,
    KIND_CONDITION,
    KIND_GENERATE_DOCUMENT,
    KIND_INVOKE_MODEL,
    KIND_SEND_CHAT_MESSAGE,
    KIND_SEND_EMAIL,
    KIND_UNSUPPORTED,
    GraphNode,
)
from quoteflow.services import chat_store, contact_store
from quoteflow.services.collaborators import Collaborators
from quoteflow.services.run_types import (
    OUT_AI_RESPONSE,
    OUT_CHAT_SENT,
    OUT_DOCUMENT_URL,
    OUT_EMAIL_SENT,
    ActionResult,
    RunContext,
)
from quoteflow.services.templating import linkify, render_email_html, substitute

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunState:
    context: RunContext
    # Snapshot of what earlier steps produced; handlers never mutate it
    outputs: Mapping[str, Any]
    services: Collaborators
    db: Session


ActionHandler = Callable[[GraphNode, RunState], ActionResult]


def _template_extras(state: RunState) -> Dict[str, str]:
    extras = dict(state.context.extras or {})
    document_url = state.outputs.get(OUT_DOCUMENT_URL)
    if document_url:
        extras["quote.downloadUrl"] = document_url
    ai_response = state.outputs.get(OUT_AI_RESPONSE)
    if ai_response:
        extras["ai.response"] = ai_response
    return extras


def handle_generate_document(node: GraphNode, state: RunState) -> ActionResult:
    contact = state.context.contact
    measurement = state.context.measurement

    missing = []
    if not (contact.name or "").strip():
        missing.append("name")
    if not (contact.email or "").strip():
        missing.append("email")
    if measurement is None:
        missing.append("measurement")
    if missing:
        return ActionResult.skipped(f"Missing contact {', '.join(missing)}")

    result = state.services.generate_document(contact, float(measurement))
    if result.error or not result.url:
        return ActionResult.error(result.error or "Document generation failed")

    if contact.id and result.storage_path:
        try:
            contact_store.append_document_reference(contact.id, result.storage_path, db=state.db)
        except ValueError:
            logger.warning(
                "Generated document could not be linked to contact",
                extra={"contact_id": contact.id, "storage_path": result.storage_path},
            )

    return ActionResult.success(
        output={"documentUrl": result.url, "storagePath": result.storage_path},
        carry={OUT_DOCUMENT_URL: result.url},
    )


def handle_send_email(node: GraphNode, state: RunState) -> ActionResult:
    config = node.config
    contact = state.context.contact
    extras = _template_extras(state)

    to = substitute(config.to or "{{contact.email}}", contact, extras).strip().lower()
    if not to:
        return ActionResult.skipped("No recipient email")

    body = substitute(config.body, contact, extras).strip()
    if not body:
        return ActionResult.skipped("Email body is not configured")

    subject = substitute(config.subject, contact, extras).strip() or "Your quote"
    html = render_email_html(
        body,
        link_url=state.outputs.get(OUT_DOCUMENT_URL),
        sender_name=state.services.sender_name,
    )

    result = state.services.send_email(to, subject, html)
    if not result.sent:
        return ActionResult.error(
            result.error or "Email was not sent",
            output={"emailSent": False},
            carry={OUT_EMAIL_SENT: False},
        )

    return ActionResult.success(
        output={"emailSent": True, "to": redact_email(to)},
        carry={OUT_EMAIL_SENT: True},
    )


def handle_send_chat_message(node: GraphNode, state: RunState) -> ActionResult:
    context = state.context
    extras = _template_extras(state)

    message = substitute(node.config.message, context.contact, extras).strip()
    if not message:
        return ActionResult.skipped("Chat message is not configured")

    conversation_id = context.conversation_id or chat_store.find_conversation_for_contact(
        state.db, context.contact.id or ""
    )
    if not conversation_id:
        return ActionResult.skipped("No chat conversation for this contact")

    content = linkify(message, state.outputs.get(OUT_DOCUMENT_URL))
    result = chat_store.insert_assistant_message(state.db, conversation_id, content)
    if not result.ok:
        return ActionResult.error(result.error or "Chat message was not saved", output={"sent": False})

    return ActionResult.success(
        output={"sent": True, "conversationId": conversation_id},
        carry={OUT_CHAT_SENT: True},
    )


def handle_add_tag(node: GraphNode, state: RunState) -> ActionResult:
    contact = state.context.contact
    tag = substitute(node.config.tag, contact, _template_extras(state)).strip()
    if not tag:
        return ActionResult.skipped("Tag name is not configured")
    if not contact.id:
        return ActionResult.skipped("No contact to tag")

    added = contact_store.add_tag(contact.id, tag, db=state.db)
    return ActionResult.success(output={"tag": tag, "added": added})


def handle_invoke_model(node: GraphNode, state: RunState) -> ActionResult:
    config = node.config
    prompt = substitute(config.prompt, state.context.contact, _template_extras(state)).strip()
    if not prompt:
        return ActionResult.skipped("Prompt is not configured")

    provider = config.provider or state.services.default_llm_provider
    api_key = state.services.resolve_api_key(provider)
    if not api_key:
        return ActionResult.skipped(f"No API key configured for {provider}")

    text = state.services.complete(provider, config.model, api_key, prompt)
    return ActionResult.success(
        output={"responseLength": len(text), "provider": provider},
        carry={OUT_AI_RESPONSE: text},
    )


def handle_condition(node: GraphNode, state: RunState) -> ActionResult:
    _ = state
    return ActionResult.skipped("Condition nodes have no side effect")


def handle_unsupported(node: GraphNode, state: RunState) -> ActionResult:
    _ = state
    action_type = getattr(node.config, "action_type", "")
    if not action_type:
        return ActionResult.skipped("No action type configured")
    return ActionResult.skipped(f"Unsupported action type: {action_type}")


def default_handlers() -> Dict[str, ActionHandler]:
    return {
        KIND_GENERATE_DOCUMENT: handle_generate_document,
        KIND_SEND_EMAIL: handle_send_email,
        KIND_SEND_CHAT_MESSAGE: handle_send_chat_message,
        KIND_ADD_TAG: handle_add_tag,
        KIND_INVOKE_MODEL: handle_invoke_model,
        KIND_CONDITION: handle_condition,
        KIND_UNSUPPORTED: handle_unsupported,
    }

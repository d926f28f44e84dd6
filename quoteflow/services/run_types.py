from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from quoteflow.services.templating import split_name

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"

TRIGGER_TYPE_QUOTE = "message_in_chat"
TRIGGER_TYPE_FORM = "form_submit"
TRIGGER_TYPE_EMAIL = "email_received"
TRIGGER_TYPE_TAG = "tag_added"

# Well-known keys in the step-output accumulator
OUT_DOCUMENT_URL = "documentUrl"
OUT_AI_RESPONSE = "aiResponse"
OUT_EMAIL_SENT = "emailSent"
OUT_CHAT_SENT = "chatMessageSent"


@dataclass(frozen=True)
class ContactInfo:
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @property
    def first_name(self) -> str:
        return split_name(self.name)[0]

    @property
    def last_name(self) -> str:
        return split_name(self.name)[1]

    @classmethod
    def from_model(cls, contact) -> "ContactInfo":
        return cls(
            id=contact.id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            address=contact.address,
        )


@dataclass(frozen=True)
class RunContext:
    trigger_type: str
    account_id: int
    contact: ContactInfo = field(default_factory=ContactInfo)
    widget_id: Optional[str] = None
    conversation_id: Optional[str] = None
    form_id: Optional[str] = None
    measurement: Optional[float] = None
    # Trigger-specific template values, e.g. inbound.subject or tag.name
    extras: Mapping[str, str] = field(default_factory=dict)

    def audit_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "account_id": self.account_id,
            "contact_id": self.contact.id,
            "contact_email": self.contact.email,
        }
        if self.widget_id:
            payload["widget_id"] = self.widget_id
        if self.conversation_id:
            payload["conversation_id"] = self.conversation_id
        if self.form_id:
            payload["form_id"] = self.form_id
        if self.measurement is not None:
            payload["measurement"] = self.measurement
        if self.extras:
            payload["extras"] = dict(self.extras)
        return payload


@dataclass(frozen=True)
class ActionResult:
    status: str
    error_message: Optional[str] = None
    # Written to the step log
    output: Optional[Dict[str, Any]] = None
    # Merged into the accumulator read by later steps
    carry: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls, output: Optional[Dict[str, Any]] = None, carry: Optional[Dict[str, Any]] = None) -> "ActionResult":
        return cls(status=STATUS_SUCCESS, output=output, carry=carry)

    @classmethod
    def skipped(cls, reason: str) -> "ActionResult":
        return cls(status=STATUS_SKIPPED, error_message=reason)

    @classmethod
    def error(
        cls,
        message: str,
        output: Optional[Dict[str, Any]] = None,
        carry: Optional[Dict[str, Any]] = None,
    ) -> "ActionResult":
        return cls(status=STATUS_ERROR, error_message=message, output=output, carry=carry)


@dataclass(frozen=True)
class StepOutcome:
    node_id: str
    node_label: str
    action_type: str
    status: str
    error_message: Optional[str] = None
    output: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class WorkflowRunResult:
    workflow_id: str
    run_id: str
    trigger_type: str
    status: str
    error_message: Optional[str]
    steps: List[StepOutcome]
    outputs: Dict[str, Any]

    @property
    def document_url(self) -> Optional[str]:
        return self.outputs.get(OUT_DOCUMENT_URL)

    @property
    def email_sent(self) -> Optional[bool]:
        return self.outputs.get(OUT_EMAIL_SENT)

    @property
    def chat_message_sent(self) -> Optional[bool]:
        return self.outputs.get(OUT_CHAT_SENT)

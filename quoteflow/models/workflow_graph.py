from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

NODE_TRIGGER = "trigger"
NODE_ACTION = "action"
NODE_CONDITION = "condition"

NODE_KINDS = (NODE_TRIGGER, NODE_ACTION, NODE_CONDITION)

# Trigger types as stored in the trigger node's data.triggerType
TRIGGER_MESSAGE_IN_CHAT = "Message in the chat"
TRIGGER_FORM_SUBMIT = "Form submit"
TRIGGER_EMAIL_RECEIVED = "Email received"
TRIGGER_TAG_ADDED = "Tag added"

INTENT_REQUESTS_QUOTE = "Customer requests quote"
LEGACY_INTENT_REQUESTS_QUOTE = "When customer requests quote"

# Action types as stored in data.actionType, mapped to dispatch keys
ACTION_GENERATE_QUOTE = "Generate quote"
ACTION_SEND_EMAIL = "Send email"
ACTION_SEND_CHAT_MESSAGE = "Send chat message"
ACTION_ADD_TAG = "Add tag"
ACTION_AI_RESPONSE = "AI response"

KIND_GENERATE_DOCUMENT = "generate_document"
KIND_SEND_EMAIL = "send_email"
KIND_SEND_CHAT_MESSAGE = "send_chat_message"
KIND_ADD_TAG = "add_tag"
KIND_INVOKE_MODEL = "invoke_model"
KIND_CONDITION = "condition"
KIND_UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TriggerConfig:
    trigger_type: str
    message_intent: str = ""
    form_id: str = ""
    widget_id: str = ""
    tag_name: str = ""


@dataclass(frozen=True)
class GenerateDocumentConfig:
    action_type: str = ACTION_GENERATE_QUOTE
    kind: str = field(default=KIND_GENERATE_DOCUMENT, init=False)


@dataclass(frozen=True)
class SendEmailConfig:
    to: str = "{{contact.email}}"
    subject: str = ""
    body: str = ""
    action_type: str = ACTION_SEND_EMAIL
    kind: str = field(default=KIND_SEND_EMAIL, init=False)


@dataclass(frozen=True)
class SendChatMessageConfig:
    message: str = ""
    action_type: str = ACTION_SEND_CHAT_MESSAGE
    kind: str = field(default=KIND_SEND_CHAT_MESSAGE, init=False)


@dataclass(frozen=True)
class AddTagConfig:
    tag: str = ""
    action_type: str = ACTION_ADD_TAG
    kind: str = field(default=KIND_ADD_TAG, init=False)


@dataclass(frozen=True)
class InvokeModelConfig:
    prompt: str = ""
    provider: str = ""
    model: str = ""
    action_type: str = ACTION_AI_RESPONSE
    kind: str = field(default=KIND_INVOKE_MODEL, init=False)


@dataclass(frozen=True)
class ConditionConfig:
    action_type: str = "Condition"
    kind: str = field(default=KIND_CONDITION, init=False)


@dataclass(frozen=True)
class UnsupportedActionConfig:
    action_type: str = ""
    kind: str = field(default=KIND_UNSUPPORTED, init=False)


NodeConfig = Union[
    TriggerConfig,
    GenerateDocumentConfig,
    SendEmailConfig,
    SendChatMessageConfig,
    AddTagConfig,
    InvokeModelConfig,
    ConditionConfig,
    UnsupportedActionConfig,
]


@dataclass(frozen=True)
class GraphNode:
    id: str
    kind: str
    label: str
    config: NodeConfig


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str


@dataclass(frozen=True)
class WorkflowGraph:
    id: str
    name: str
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]

    @property
    def trigger(self) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.kind == NODE_TRIGGER:
                return node
        return None

    @property
    def trigger_config(self) -> Optional[TriggerConfig]:
        node = self.trigger
        if node is None:
            return None
        return node.config  # type: ignore[return-value]

from quoteflow.models.contact import Contact
from quoteflow.models.conversation import Conversation, ConversationMessage
from quoteflow.models.integration import Integration
from quoteflow.models.quote_form import QuoteForm
from quoteflow.models.workflow import Workflow
from quoteflow.models.workflow_execution import WorkflowExecution, WorkflowExecutionStep

__all__ = [
    "Contact",
    "Conversation",
    "ConversationMessage",
    "Integration",
    "QuoteForm",
    "Workflow",
    "WorkflowExecution",
    "WorkflowExecutionStep",
]

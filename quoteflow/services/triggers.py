import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from quoteflow.models.workflow import Workflow
from quoteflow.models.workflow_graph import (
    ACTION_GENERATE_QUOTE,
    INTENT_REQUESTS_QUOTE,
    LEGACY_INTENT_REQUESTS_QUOTE,
    TRIGGER_EMAIL_RECEIVED,
    TRIGGER_FORM_SUBMIT,
    TRIGGER_MESSAGE_IN_CHAT,
    TRIGGER_TAG_ADDED,
    WorkflowGraph,
)
from quoteflow.services.action_handlers import ActionHandler
from quoteflow.services.collaborators import Collaborators
from quoteflow.services.graph_resolver import WorkflowConfigError, graph_from_workflow
from quoteflow.services.run_types import STATUS_ERROR, RunContext, WorkflowRunResult
from quoteflow.services.workflow_runner import run_workflow

logger = logging.getLogger(__name__)

LIVE_SCAN_LIMIT = 50

QUOTE_INTENTS = {INTENT_REQUESTS_QUOTE, LEGACY_INTENT_REQUESTS_QUOTE}


@dataclass(frozen=True)
class QuoteTriggerResult:
    workflow_id: str
    run: WorkflowRunResult
    instruction: str

    @property
    def document_url(self) -> Optional[str]:
        return self.run.document_url

    @property
    def email_sent(self) -> Optional[bool]:
        return self.run.email_sent


def list_live_workflows(
    db: Session,
    *,
    widget_id: Optional[str] = None,
    account_id: Optional[int] = None,
) -> List[Workflow]:
    if widget_id is None and account_id is None:
        raise ValueError("A widget_id or account_id scope is required")

    q = db.query(Workflow).filter(Workflow.status == "live")
    if widget_id is not None:
        q = q.filter(Workflow.widget_id == widget_id)
    if account_id is not None:
        q = q.filter(Workflow.account_id == int(account_id))

    return q.order_by(Workflow.created_at.asc(), Workflow.id.asc()).limit(LIVE_SCAN_LIMIT).all()


def _live_graphs(db: Session, **scope) -> List[WorkflowGraph]:
    graphs = []
    for row in list_live_workflows(db, **scope):
        try:
            graphs.append(graph_from_workflow(row))
        except WorkflowConfigError as exc:
            logger.warning("Skipping misconfigured workflow", extra={"workflow_id": row.id, "error": str(exc)})
    return graphs


def find_quote_workflow(db: Session, widget_id: str) -> Optional[WorkflowGraph]:
    for graph in _live_graphs(db, widget_id=widget_id):
        trigger = graph.trigger_config
        if trigger.trigger_type == TRIGGER_MESSAGE_IN_CHAT and trigger.message_intent in QUOTE_INTENTS:
            return graph
    return None


def find_form_workflow(db: Session, account_id: int, form_id: str) -> Optional[WorkflowGraph]:
    for graph in _live_graphs(db, account_id=account_id):
        trigger = graph.trigger_config
        if trigger.trigger_type == TRIGGER_FORM_SUBMIT and trigger.form_id == str(form_id):
            return graph
    return None


def find_email_received_workflows(db: Session, account_id: int, widget_id: str) -> List[WorkflowGraph]:
    return [
        g
        for g in _live_graphs(db, account_id=account_id)
        if g.trigger_config.trigger_type == TRIGGER_EMAIL_RECEIVED and g.trigger_config.widget_id == widget_id
    ]


def find_tag_added_workflows(db: Session, account_id: int, widget_id: str, tag: str) -> List[WorkflowGraph]:
    """A workflow without a tag filter matches every tag added in its scope."""
    tag = (tag or "").strip()
    matches = []
    for graph in _live_graphs(db, account_id=account_id):
        trigger = graph.trigger_config
        if trigger.trigger_type != TRIGGER_TAG_ADDED or trigger.widget_id != widget_id:
            continue
        if trigger.tag_name and trigger.tag_name != tag:
            continue
        matches.append(graph)
    return matches


def build_quote_instruction(run: WorkflowRunResult) -> str:
    """Plain-language guidance for the chat model about what the quote workflow did."""
    if run.document_url:
        if run.email_sent is True:
            email_part = (
                " In the same message, say they will also receive the quote by email,"
                " but give them the link above as a hyperlink in your response."
            )
        else:
            email_part = " Give them the link above as a hyperlink in your response. Do not say they will receive it by email."
        return (
            "A quote has been generated. You MUST include this exact clickable link in your reply"
            f" on a single line: [Download Quote]({run.document_url}).{email_part}"
        )

    generation_failed = any(
        s.action_type == ACTION_GENERATE_QUOTE and s.status == STATUS_ERROR for s in run.steps
    )
    if generation_failed:
        return (
            "The quote could not be generated right now. Apologise to the customer, tell them the team"
            " will follow up with their quote shortly, and do not share any link."
        )
    return ""


def run_quote_trigger(
    db: Session,
    widget_id: str,
    context: RunContext,
    *,
    services: Optional[Collaborators] = None,
    handlers: Optional[Dict[str, ActionHandler]] = None,
) -> Optional[QuoteTriggerResult]:
    graph = find_quote_workflow(db, widget_id)
    if graph is None:
        return None

    run = run_workflow(graph, context, services=services, handlers=handlers)
    return QuoteTriggerResult(workflow_id=graph.id, run=run, instruction=build_quote_instruction(run))


def run_form_submit(
    db: Session,
    form_id: str,
    account_id: int,
    context: RunContext,
    *,
    services: Optional[Collaborators] = None,
    handlers: Optional[Dict[str, ActionHandler]] = None,
) -> Optional[WorkflowRunResult]:
    graph = find_form_workflow(db, account_id, form_id)
    if graph is None:
        return None
    return run_workflow(graph, context, services=services, handlers=handlers)


def run_email_received(
    db: Session,
    account_id: int,
    widget_id: str,
    context: RunContext,
    *,
    services: Optional[Collaborators] = None,
    handlers: Optional[Dict[str, ActionHandler]] = None,
) -> List[WorkflowRunResult]:
    return [
        run_workflow(graph, context, services=services, handlers=handlers)
        for graph in find_email_received_workflows(db, account_id, widget_id)
    ]


def run_tag_added(
    db: Session,
    account_id: int,
    widget_id: str,
    tag: str,
    context: RunContext,
    *,
    services: Optional[Collaborators] = None,
    handlers: Optional[Dict[str, ActionHandler]] = None,
) -> List[WorkflowRunResult]:
    return [
        run_workflow(graph, context, services=services, handlers=handlers)
        for graph in find_tag_added_workflows(db, account_id, widget_id, tag)
    ]

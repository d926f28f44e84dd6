import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from quoteflow.database import SessionLocal
from quoteflow.models.workflow_graph import WorkflowGraph
from quoteflow.services import ledger
from quoteflow.services.action_handlers import ActionHandler, RunState, default_handlers
from quoteflow.services.collaborators import Collaborators, default_collaborators
from quoteflow.services.graph_resolver import ordered_actions
from quoteflow.services.run_types import (
    STATUS_ERROR,
    TRIGGER_TYPE_EMAIL,
    TRIGGER_TYPE_FORM,
    TRIGGER_TYPE_QUOTE,
    TRIGGER_TYPE_TAG,
    ActionResult,
    RunContext,
    StepOutcome,
    WorkflowRunResult,
)

logger = logging.getLogger(__name__)

# Chat and form runs stop at the first failed step; unattended runs keep going.
ABORT_ON_ERROR = {
    TRIGGER_TYPE_QUOTE: True,
    TRIGGER_TYPE_FORM: True,
    TRIGGER_TYPE_EMAIL: False,
    TRIGGER_TYPE_TAG: False,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def run_workflow(
    graph: WorkflowGraph,
    context: RunContext,
    *,
    services: Optional[Collaborators] = None,
    handlers: Optional[Dict[str, ActionHandler]] = None,
    session_factory=SessionLocal,
) -> WorkflowRunResult:
    """
    Execute the graph's actions in breadth-first order for one firing event.

    The run owns its session from session_factory: each step's writes are
    committed when the step succeeds (or is skipped) and rolled back when it
    fails.

    Never raises: the outcome, including the first failure, is returned and
    mirrored in the execution log.
    """
    db = session_factory()

    if handlers is None:
        handlers = default_handlers()

    abort_on_error = ABORT_ON_ERROR.get(context.trigger_type, True)
    log_extra = {"workflow_id": graph.id, "trigger_type": context.trigger_type}

    run_id = ledger.start_run(
        graph.id,
        context.trigger_type,
        context.audit_payload(),
        session_factory=session_factory,
    )
    log_extra["execution_id"] = run_id
    logger.info("Workflow run started", extra=log_extra)

    outputs: Dict[str, Any] = {}
    steps: List[StepOutcome] = []
    first_error: Optional[str] = None

    try:
        if services is None:
            services = default_collaborators(db, context.account_id, scope=context.widget_id or context.form_id)

        for node in ordered_actions(graph.nodes, graph.edges):
            started_at = _utcnow()
            kind = node.config.kind
            action_type = getattr(node.config, "action_type", "") or kind

            try:
                handler = handlers.get(kind)
                if handler is None:
                    raise ValueError(f"No handler registered for action kind {kind}")

                result = handler(node, RunState(context=context, outputs=dict(outputs), services=services, db=db))

                if result.status == STATUS_ERROR:
                    db.rollback()
                else:
                    db.commit()

            except Exception as exc:
                db.rollback()
                logger.exception(
                    "Workflow step raised",
                    extra={**log_extra, "node_id": node.id, "action_type": action_type},
                )
                result = ActionResult.error(str(exc) or exc.__class__.__name__)

            if result.carry:
                outputs = {**outputs, **result.carry}

            ledger.log_step(
                run_id,
                node.id,
                node.label,
                action_type,
                result.status,
                result.error_message,
                result.output,
                started_at=started_at,
                session_factory=session_factory,
            )
            steps.append(
                StepOutcome(
                    node_id=node.id,
                    node_label=node.label,
                    action_type=action_type,
                    status=result.status,
                    error_message=result.error_message,
                    output=result.output,
                )
            )

            if result.status == STATUS_ERROR:
                logger.warning(
                    "Workflow step failed",
                    extra={
                        **log_extra,
                        "node_id": node.id,
                        "action_type": action_type,
                        "error": result.error_message,
                        "abort": abort_on_error,
                    },
                )
                if first_error is None:
                    first_error = result.error_message or "Step failed"
                if abort_on_error:
                    break

    except Exception as exc:
        logger.exception("Workflow run failed", extra=log_extra)
        if first_error is None:
            first_error = str(exc) or exc.__class__.__name__

    finally:
        db.close()

    status = ledger.RUN_ERROR if first_error is not None else ledger.RUN_SUCCESS
    ledger.finish_run(run_id, status, first_error, session_factory=session_factory)
    logger.info("Workflow run finished", extra={**log_extra, "status": status, "steps": len(steps)})

    return WorkflowRunResult(
        workflow_id=graph.id,
        run_id=run_id,
        trigger_type=context.trigger_type,
        status=status,
        error_message=first_error,
        steps=steps,
        outputs=outputs,
    )

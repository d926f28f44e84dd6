import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quoteflow.database import SessionLocal
from quoteflow.models.workflow_execution import WorkflowExecution, WorkflowExecutionStep

logger = logging.getLogger(__name__)

NO_RUN = ""

RUN_RUNNING = "running"
RUN_SUCCESS = "success"
RUN_ERROR = "error"

STEP_STATUSES = {"success", "error", "skipped"}

SessionFactory = Callable[[], Session]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_run(
    workflow_id: str,
    trigger_type: str,
    payload: Optional[Dict[str, Any]] = None,
    *,
    session_factory: SessionFactory = SessionLocal,
) -> str:
    """
    Open a run record and return its id.

    Returns NO_RUN when the log store is unavailable; the workflow still runs.
    """
    db = session_factory()
    try:
        run = WorkflowExecution(
            id=str(uuid.uuid4()),
            workflow_id=str(workflow_id),
            trigger_type=trigger_type,
            trigger_payload=payload or {},
            status=RUN_RUNNING,
            started_at=_utcnow(),
        )
        db.add(run)
        db.commit()
        return run.id
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Execution log unavailable; running workflow without a run record",
            extra={"workflow_id": workflow_id, "trigger_type": trigger_type},
        )
        return NO_RUN
    finally:
        db.close()


def log_step(
    run_id: str,
    node_id: str,
    node_label: Optional[str],
    action_type: Optional[str],
    status: str,
    error_message: Optional[str] = None,
    output: Optional[Dict[str, Any]] = None,
    *,
    started_at: Optional[datetime] = None,
    session_factory: SessionFactory = SessionLocal,
) -> None:
    if run_id == NO_RUN:
        return
    if status not in STEP_STATUSES:
        raise ValueError(f"Invalid step status: {status}")

    db = session_factory()
    try:
        run = db.query(WorkflowExecution).filter_by(id=run_id).first()
        if run is None or run.finished_at is not None:
            logger.warning(
                "Refusing to append step to missing or finished run",
                extra={"execution_id": run_id, "node_id": node_id},
            )
            return

        now = _utcnow()
        db.add(
            WorkflowExecutionStep(
                execution_id=run_id,
                node_id=node_id,
                node_label=node_label,
                action_type=action_type,
                status=status,
                error_message=error_message,
                output=output,
                started_at=started_at or now,
                finished_at=now,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to write execution step",
            extra={"execution_id": run_id, "node_id": node_id, "status": status},
        )
    finally:
        db.close()


def finish_run(
    run_id: str,
    status: str,
    error_message: Optional[str] = None,
    *,
    session_factory: SessionFactory = SessionLocal,
) -> None:
    """Set the terminal status once; later calls leave the first outcome in place."""
    if run_id == NO_RUN:
        return
    if status not in (RUN_SUCCESS, RUN_ERROR):
        raise ValueError(f"Invalid terminal run status: {status}")

    db = session_factory()
    try:
        run = db.query(WorkflowExecution).filter_by(id=run_id).first()
        if run is None:
            return
        if run.finished_at is not None:
            logger.warning("Run already finished", extra={"execution_id": run_id, "status": run.status})
            return

        run.status = status
        run.error_message = error_message
        run.finished_at = _utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to close execution run", extra={"execution_id": run_id, "status": status})
    finally:
        db.close()


def list_runs(db: Session, workflow_id: str, *, limit: int = 50, offset: int = 0):
    """Newest first, with the number of steps each run recorded."""
    runs = (
        db.query(WorkflowExecution)
        .filter(WorkflowExecution.workflow_id == str(workflow_id))
        .order_by(WorkflowExecution.started_at.desc(), WorkflowExecution.id.desc())
        .limit(int(limit))
        .offset(int(offset))
        .all()
    )

    counts: Dict[str, int] = {}
    run_ids = [r.id for r in runs]
    if run_ids:
        for (execution_id,) in (
            db.query(WorkflowExecutionStep.execution_id)
            .filter(WorkflowExecutionStep.execution_id.in_(run_ids))
            .all()
        ):
            counts[execution_id] = counts.get(execution_id, 0) + 1

    return [(r, counts.get(r.id, 0)) for r in runs]


def get_run_with_steps(db: Session, workflow_id: str, run_id: str):
    run = (
        db.query(WorkflowExecution)
        .filter(WorkflowExecution.id == run_id, WorkflowExecution.workflow_id == str(workflow_id))
        .first()
    )
    if run is None:
        return None, []

    steps = (
        db.query(WorkflowExecutionStep)
        .filter(WorkflowExecutionStep.execution_id == run_id)
        .order_by(WorkflowExecutionStep.id.asc())
        .all()
    )
    return run, steps

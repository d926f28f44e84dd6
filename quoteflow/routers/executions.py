from fastapi import APIRouter, Depends, HTTPException, Query, Request

from quoteflow.database import SessionLocal
from quoteflow.deps.auth import require_auth
from quoteflow.models.workflow import Workflow
from quoteflow.schemas.executions import (
    ExecutionDetailResponse,
    ExecutionListResponse,
    ExecutionStepResponse,
    ExecutionSummaryResponse,
)
from quoteflow.services import ledger

router = APIRouter(prefix="/workflows", tags=["Executions"])


def _require_workflow(db, workflow_id: str, account_id: int) -> Workflow:
    workflow = (
        db.query(Workflow)
        .filter(Workflow.id == workflow_id, Workflow.account_id == int(account_id))
        .first()
    )
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return workflow


@router.get("/{workflow_id}/executions", response_model=ExecutionListResponse)
def list_executions(
    workflow_id: str,
    request: Request,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0, le=1_000_000),
    _auth: tuple[str, int] = Depends(require_auth),
):
    db = SessionLocal()
    try:
        _require_workflow(db, workflow_id, request.state.account_id)

        rows = ledger.list_runs(db, workflow_id, limit=limit, offset=offset)
        return ExecutionListResponse(
            limit=int(limit),
            offset=int(offset),
            executions=[
                ExecutionSummaryResponse(
                    id=run.id,
                    workflow_id=run.workflow_id,
                    trigger_type=run.trigger_type,
                    trigger_payload=run.trigger_payload or {},
                    status=run.status,
                    error_message=run.error_message,
                    started_at=run.started_at,
                    finished_at=run.finished_at,
                    step_count=step_count,
                )
                for run, step_count in rows
            ],
        )
    finally:
        db.close()


@router.get("/{workflow_id}/executions/{execution_id}", response_model=ExecutionDetailResponse)
def get_execution(
    workflow_id: str,
    execution_id: str,
    request: Request,
    _auth: tuple[str, int] = Depends(require_auth),
):
    db = SessionLocal()
    try:
        _require_workflow(db, workflow_id, request.state.account_id)

        run, steps = ledger.get_run_with_steps(db, workflow_id, execution_id)
        if run is None:
            raise HTTPException(status_code=404, detail="Execution not found")

        return ExecutionDetailResponse(
            id=run.id,
            workflow_id=run.workflow_id,
            trigger_type=run.trigger_type,
            trigger_payload=run.trigger_payload or {},
            status=run.status,
            error_message=run.error_message,
            started_at=run.started_at,
            finished_at=run.finished_at,
            steps=[ExecutionStepResponse.model_validate(s) for s in steps],
        )
    finally:
        db.close()

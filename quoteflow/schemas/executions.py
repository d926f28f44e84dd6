from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ExecutionStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    node_id: str
    node_label: Optional[str]
    action_type: Optional[str]
    status: str
    error_message: Optional[str]
    output: Optional[Dict[str, Any]]
    started_at: datetime
    finished_at: Optional[datetime]


class ExecutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    trigger_type: str
    trigger_payload: Dict[str, Any]
    status: str
    error_message: Optional[str]
    started_at: datetime
    finished_at: Optional[datetime]


class ExecutionSummaryResponse(ExecutionResponse):
    step_count: int


class ExecutionListResponse(BaseModel):
    limit: int
    offset: int
    executions: List[ExecutionSummaryResponse]


class ExecutionDetailResponse(ExecutionResponse):
    steps: List[ExecutionStepResponse]

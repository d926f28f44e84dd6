from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text

from quoteflow.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowExecution(Base):
    """One run of a workflow for one firing event."""

    __tablename__ = "workflow_executions"

    __table_args__ = (
        CheckConstraint("status in ('running', 'success', 'error')", name="ck_workflow_executions_status"),
        Index("ix_workflow_executions_workflow_started", "workflow_id", "started_at"),
    )

    id = Column(String, primary_key=True, index=True)

    workflow_id = Column(String, nullable=False, index=True)
    trigger_type = Column(String, nullable=False)  # message_in_chat|form_submit|email_received|tag_added
    trigger_payload = Column(JSON, nullable=False, default=dict)

    status = Column(String, nullable=False, default="running")
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    finished_at = Column(DateTime(timezone=True), nullable=True)


class WorkflowExecutionStep(Base):
    """Append-only outcome of one visited node. Never updated after insert."""

    __tablename__ = "workflow_execution_steps"

    __table_args__ = (
        CheckConstraint("status in ('success', 'error', 'skipped')", name="ck_workflow_execution_steps_status"),
    )

    id = Column(Integer, primary_key=True)

    execution_id = Column(
        String,
        ForeignKey("workflow_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    node_id = Column(String, nullable=False)
    node_label = Column(String, nullable=True)
    action_type = Column(String, nullable=True)

    status = Column(String, nullable=False)
    error_message = Column(Text, nullable=True)
    output = Column(JSON, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    finished_at = Column(DateTime(timezone=True), nullable=True)

from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String

from quoteflow.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workflow(Base):
    __tablename__ = "workflows"

    __table_args__ = (
        CheckConstraint("status in ('draft', 'live')", name="ck_workflows_status"),
    )

    id = Column(String, primary_key=True, index=True)

    account_id = Column(Integer, nullable=False, index=True)
    widget_id = Column(String, nullable=True, index=True)

    name = Column(String, nullable=False, default="Untitled workflow")
    status = Column(String, nullable=False, default="draft")

    # Graph as authored in the editor: [{id, type, data}] / [{id, source, target}]
    nodes = Column(JSON, nullable=False, default=list)
    edges = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

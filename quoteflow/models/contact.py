from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.ext.mutable import MutableList

from quoteflow.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, index=True)

    account_id = Column(Integer, nullable=False, index=True)
    widget_id = Column(String, nullable=True, index=True)
    conversation_id = Column(String, nullable=True, index=True)

    name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    tags = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    documents = Column(MutableList.as_mutable(JSON), nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

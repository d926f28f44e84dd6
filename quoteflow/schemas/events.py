from typing import List, Optional

from pydantic import BaseModel


class EmailReceivedRequest(BaseModel):
    widget_id: str
    from_email: str
    subject: str = ""
    body: str = ""
    from_name: Optional[str] = None


class AddTagRequest(BaseModel):
    tag: str


class RunSummary(BaseModel):
    workflow_id: str
    execution_id: str
    status: str
    error_message: Optional[str] = None


class EventResponse(BaseModel):
    runs: List[RunSummary]


class AddTagResponse(EventResponse):
    contact_id: str
    tag: str
    added: bool
    tags: List[str]

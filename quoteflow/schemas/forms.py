from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FormSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street_address: Optional[str] = None
    post_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    roof_size: Optional[float] = Field(default=None, alias="roofSize")


class FormSubmitResponse(BaseModel):
    success: bool
    documentUrl: Optional[str] = None

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from signdesk.models.document import DocumentStatus


class DocumentCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=255)
    original_url: str = Field(min_length=1)


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    name: str
    original_url: str
    signed_url: Optional[str] = None
    status: DocumentStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def status_display(self) -> str:
        return self.status.display_name

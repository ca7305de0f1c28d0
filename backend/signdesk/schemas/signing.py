from typing import List

from pydantic import BaseModel

from signdesk.schemas.document import DocumentResponse


class EmbedWarningResponse(BaseModel):
    annotation_id: str
    font_ref: str
    code: str
    message: str


class SaveResponse(BaseModel):
    document: DocumentResponse
    signed_url: str
    file_name: str
    page_count: int
    warnings: List[EmbedWarningResponse]

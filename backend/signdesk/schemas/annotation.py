from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from signdesk.models.annotation import FONT_SIZE_MAX, FONT_SIZE_MIN, TEXT_MAX_LENGTH, FontRef
from signdesk.utils.colors import parse_color, to_hex


class SessionCreate(BaseModel):
    document_id: str


class AnnotationCreate(BaseModel):
    text: str = Field(max_length=TEXT_MAX_LENGTH)
    font_ref: FontRef = FontRef.GREAT_VIBES
    font_size: float = Field(default=24, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    color: Tuple[int, int, int] = (30, 64, 175)  # #1e40af
    page: int = Field(default=1, ge=1)

    @field_validator("color", mode="before")
    @classmethod
    def parse_color_value(cls, value: Any):
        return parse_color(value)


class AnnotationUpdate(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1, max_length=TEXT_MAX_LENGTH)
    font_ref: Optional[FontRef] = None
    font_size: Optional[float] = Field(default=None, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    color: Optional[Tuple[int, int, int]] = None
    page: Optional[int] = Field(default=None, ge=1)

    @field_validator("color", mode="before")
    @classmethod
    def parse_color_value(cls, value: Any):
        if value is None:
            return value
        return parse_color(value)


class PositionUpdate(BaseModel):
    x: float
    y: float


class GeometryUpdate(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class AnnotationResponse(BaseModel):
    id: str
    text: str
    font_ref: FontRef
    font_size: float
    color: str
    x: float
    y: float
    page: int

    @classmethod
    def from_annotation(cls, annotation) -> "AnnotationResponse":
        return cls(
            id=annotation.id,
            text=annotation.text,
            font_ref=annotation.font_ref,
            font_size=annotation.font_size,
            color=to_hex(annotation.color),
            x=annotation.x,
            y=annotation.y,
            page=annotation.page,
        )


class AnnotationListResponse(BaseModel):
    page: Optional[int] = None
    annotations: List[AnnotationResponse]

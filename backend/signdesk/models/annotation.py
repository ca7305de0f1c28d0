from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Tuple
import uuid

TEXT_MAX_LENGTH = 32
FONT_SIZE_MIN = 12
FONT_SIZE_MAX = 72

# Where a new stamp lands before the user drags it
DEFAULT_POSITION = (100.0, 100.0)


class FontRef(str, enum.Enum):
    GREAT_VIBES = "great_vibes"
    PACIFICO = "pacifico"
    SATISFY = "satisfy"
    BRUSH_SCRIPT = "brush_script"
    ARIAL = "arial"
    TIMES_NEW_ROMAN = "times_new_roman"


RGB = Tuple[int, int, int]


def new_annotation_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class SignatureAnnotation:
    """
    One text stamp in overlay space (pixels, origin top-left).
    """
    text: str
    font_ref: FontRef
    font_size: float
    color: RGB
    page: int
    x: float = DEFAULT_POSITION[0]
    y: float = DEFAULT_POSITION[1]
    id: str = field(default_factory=new_annotation_id)

    def with_changes(self, **changes) -> "SignatureAnnotation":
        changes.pop("id", None)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "font_ref": self.font_ref.value,
            "font_size": self.font_size,
            "color": list(self.color),
            "x": self.x,
            "y": self.y,
            "page": self.page,
        }

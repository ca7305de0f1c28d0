"""
In-memory store for the signature annotations of one editing session.

The store is the only mutable state touched before embedding. It performs no
I/O; position updates arrive from whatever collaborator handles input.
"""

import logging
from typing import Any, Dict, List, Optional

from signdesk.models.annotation import (
    FONT_SIZE_MAX,
    FONT_SIZE_MIN,
    TEXT_MAX_LENGTH,
    FontRef,
    SignatureAnnotation,
)
from signdesk.services.coordinate_transformer import (
    CoordinateTransformer,
    OverlayGeometry,
    check_page_index,
)
from signdesk.utils.colors import RGB, parse_color
from signdesk.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("text", "font_ref", "font_size", "color", "x", "y", "page")


class AnnotationStore:
    """Ordered collection of SignatureAnnotation keyed by id."""

    def __init__(self, page_count: int):
        if page_count < 1:
            raise ValidationError("Document must have at least one page", field="page_count")
        self.page_count = page_count
        self._annotations: Dict[str, SignatureAnnotation] = {}
        self.selected_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._annotations)

    def add(
        self,
        text: str,
        font_ref: Any,
        font_size: float,
        color: Any,
        page: int
    ) -> Optional[str]:
        """Create an annotation at the default position and return its id.

        Returns None without changing the store when the text is blank.
        """
        if not text or not text.strip():
            return None

        fields = self._validated({
            "text": text,
            "font_ref": font_ref,
            "font_size": font_size,
            "color": color,
            "page": page,
        })
        annotation = SignatureAnnotation(**fields)
        self._annotations[annotation.id] = annotation
        logger.debug(f"Added annotation {annotation.id} on page {annotation.page}")
        return annotation.id

    def update(self, annotation_id: str, **changes) -> Optional[SignatureAnnotation]:
        """Merge changes into an annotation. Unknown ids are ignored."""
        current = self._annotations.get(annotation_id)
        if current is None:
            return None

        unknown = set(changes) - set(EDITABLE_FIELDS) - {"id"}
        if unknown:
            raise ValidationError(f"Unknown annotation fields: {', '.join(sorted(unknown))}")

        changes.pop("id", None)
        if "text" in changes and (not changes["text"] or not changes["text"].strip()):
            raise ValidationError("Signature text cannot be empty", field="text")

        updated = current.with_changes(**self._validated(changes))
        self._annotations[annotation_id] = updated
        return updated

    def move(self, annotation_id: str, x: float, y: float, overlay: OverlayGeometry) -> Optional[SignatureAnnotation]:
        """Position update from a drag; clamps the stamp inside the overlay."""
        current = self._annotations.get(annotation_id)
        if current is None:
            return None

        clamped_x, clamped_y = CoordinateTransformer.clamp_position(x, y, current.font_size, overlay)
        return self.update(annotation_id, x=clamped_x, y=clamped_y)

    def remove(self, annotation_id: str) -> bool:
        removed = self._annotations.pop(annotation_id, None)
        if self.selected_id == annotation_id:
            self.selected_id = None
        return removed is not None

    def select(self, annotation_id: Optional[str]) -> None:
        if annotation_id is not None and annotation_id not in self._annotations:
            return
        self.selected_id = annotation_id

    def get(self, annotation_id: str) -> Optional[SignatureAnnotation]:
        return self._annotations.get(annotation_id)

    def list_by_page(self, page: int) -> List[SignatureAnnotation]:
        return [a for a in self._annotations.values() if a.page == page]

    def all(self) -> List[SignatureAnnotation]:
        return list(self._annotations.values())

    def clear(self) -> None:
        self._annotations.clear()
        self.selected_id = None

    def _validated(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(fields)

        if "text" in result:
            text = str(result["text"])
            if len(text) > TEXT_MAX_LENGTH:
                raise ValidationError(
                    f"Signature text exceeds {TEXT_MAX_LENGTH} characters",
                    field="text",
                    details={"max_length": TEXT_MAX_LENGTH}
                )
            result["text"] = text

        if "font_ref" in result:
            try:
                result["font_ref"] = FontRef(result["font_ref"])
            except ValueError:
                raise ValidationError(f"Unknown font: {result['font_ref']}", field="font_ref")

        if "font_size" in result:
            size = float(result["font_size"])
            if size < FONT_SIZE_MIN or size > FONT_SIZE_MAX:
                raise ValidationError(
                    f"Font size must be between {FONT_SIZE_MIN} and {FONT_SIZE_MAX}",
                    field="font_size",
                    details={"min": FONT_SIZE_MIN, "max": FONT_SIZE_MAX}
                )
            result["font_size"] = size

        if "color" in result:
            result["color"] = self._color(result["color"])

        if "page" in result:
            page = int(result["page"])
            check_page_index(page, self.page_count)
            result["page"] = page

        for axis in ("x", "y"):
            if axis in result:
                value = float(result[axis])
                if value < 0:
                    raise ValidationError(f"{axis} must be non-negative", field=axis)
                result[axis] = value

        return result

    @staticmethod
    def _color(value: Any) -> RGB:
        try:
            return parse_color(value)
        except ValueError as e:
            raise ValidationError(str(e), field="color")

"""
Overlay-to-page coordinate mapping for signature stamps.

Overlay space is the on-screen page preview: origin top-left, units are render
pixels. Native space is the PDF page: origin bottom-left (offset by the
mediabox origin), units are PDF points.

Placement policy:
    scale_x = page_width / overlay_width
    scale_y = page_height / overlay_height
    native_x = origin_x + x * scale_x
    native_y = origin_y + page_height - y * scale_y - font_size * scale_y + y_offset
    native_font_size = font_size * scale_y

The font size always follows the vertical scale factor, so a stamp keeps the
height it had on screen relative to the page even when the preview's aspect
ratio drifts from the page's. ``y_offset`` is a tunable baseline correction in
native units and defaults to 0.
"""

from dataclasses import dataclass
from typing import Tuple

from signdesk.utils.exceptions import DegenerateGeometryError, PageOutOfRangeError


@dataclass(frozen=True)
class OverlayGeometry:
    """Rendered size of the page preview, in pixels."""
    width: float
    height: float


@dataclass(frozen=True)
class PageGeometry:
    """Native size of a PDF page in points, plus its mediabox origin."""
    width: float
    height: float
    origin_x: float = 0.0
    origin_y: float = 0.0


@dataclass(frozen=True)
class NativePlacement:
    x: float
    y: float
    font_size: float


def check_page_index(page: int, page_count: int) -> None:
    """Raise PageOutOfRangeError unless 1 <= page <= page_count."""
    if page < 1 or page > page_count:
        raise PageOutOfRangeError(page, page_count)


class CoordinateTransformer:
    """Maps annotation positions between overlay space and native page space."""

    def __init__(self, y_offset: float = 0.0):
        self.y_offset = float(y_offset)

    def scale_factors(self, overlay: OverlayGeometry, page: PageGeometry, page_number: int = None) -> Tuple[float, float]:
        if overlay.width <= 0 or overlay.height <= 0:
            raise DegenerateGeometryError(
                f"overlay size {overlay.width}x{overlay.height} must be positive",
                page=page_number
            )
        if page.width <= 0 or page.height <= 0:
            raise DegenerateGeometryError(
                f"page size {page.width}x{page.height} must be positive",
                page=page_number
            )
        return page.width / overlay.width, page.height / overlay.height

    def to_native(
        self,
        x: float,
        y: float,
        font_size: float,
        overlay: OverlayGeometry,
        page: PageGeometry,
        page_number: int = None
    ) -> NativePlacement:
        scale_x, scale_y = self.scale_factors(overlay, page, page_number)

        native_x = page.origin_x + x * scale_x
        native_y = page.origin_y + page.height - (y * scale_y) - (font_size * scale_y) + self.y_offset

        return NativePlacement(x=native_x, y=native_y, font_size=font_size * scale_y)

    def to_overlay(
        self,
        placement: NativePlacement,
        overlay: OverlayGeometry,
        page: PageGeometry,
        page_number: int = None
    ) -> Tuple[float, float, float]:
        """Inverse of to_native: returns (x, y, font_size) in overlay space."""
        scale_x, scale_y = self.scale_factors(overlay, page, page_number)

        font_size = placement.font_size / scale_y
        x = (placement.x - page.origin_x) / scale_x
        y = (page.origin_y + page.height - placement.y + self.y_offset) / scale_y - font_size
        return x, y, font_size

    @staticmethod
    def clamp_position(x: float, y: float, font_size: float, overlay: OverlayGeometry) -> Tuple[float, float]:
        """Keep a dragged stamp inside the overlay, leaving room for its own footprint."""
        if overlay.width <= 0 or overlay.height <= 0:
            raise DegenerateGeometryError(f"overlay size {overlay.width}x{overlay.height} must be positive")

        max_x = max(0.0, overlay.width - font_size)
        max_y = max(0.0, overlay.height - font_size)
        return max(0.0, min(x, max_x)), max(0.0, min(y, max_y))

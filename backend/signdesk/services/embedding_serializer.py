"""
Burns signature annotations into a PDF.

Each page that carries stamps gets a ReportLab overlay of the same size with
the stamp text drawn on it; the overlay is merged into the page's content with
pypdf and the whole document is written back out as new bytes.
"""

import asyncio
import hashlib
import io
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pypdf import PdfReader, PdfWriter, Transformation
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from signdesk.models.annotation import SignatureAnnotation
from signdesk.services.coordinate_transformer import (
    CoordinateTransformer,
    NativePlacement,
    OverlayGeometry,
    PageGeometry,
    check_page_index,
)
from signdesk.services.font_resolver import (
    EmbeddedFont,
    FontResolution,
    FontResolver,
    standard_font_for,
)
from signdesk.utils.colors import to_native_color
from signdesk.utils.exceptions import CorruptSourceDocumentError, DegenerateGeometryError

logger = logging.getLogger(__name__)

# ReportLab keeps registered fonts in a process-wide table
_font_registry_lock = threading.Lock()


@dataclass(frozen=True)
class EmbedWarning:
    annotation_id: str
    font_ref: str
    message: str
    code: str = "FONT_FETCH_FAILED"

    def to_dict(self) -> dict:
        return {
            "annotation_id": self.annotation_id,
            "font_ref": self.font_ref,
            "code": self.code,
            "message": self.message,
        }


@dataclass(frozen=True)
class EmbedResult:
    document_bytes: bytes
    page_count: int
    warnings: Tuple[EmbedWarning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _Stamp:
    annotation: SignatureAnnotation
    page_index: int
    page: PageGeometry
    placement: NativePlacement


def page_geometry(page) -> PageGeometry:
    box = page.mediabox
    return PageGeometry(
        width=float(box.width),
        height=float(box.height),
        origin_x=float(box.left),
        origin_y=float(box.bottom),
    )


def read_document(document_bytes: bytes) -> PdfReader:
    """Parse PDF bytes; any failure becomes CorruptSourceDocumentError."""
    if not document_bytes:
        raise CorruptSourceDocumentError("document is empty")
    try:
        reader = PdfReader(io.BytesIO(document_bytes))
        if reader.is_encrypted and not reader.decrypt(""):
            raise CorruptSourceDocumentError("document is password protected")
        if len(reader.pages) == 0:
            raise CorruptSourceDocumentError("document has no pages")
        # Page objects are parsed lazily; touch every page box now
        for page in reader.pages:
            page_geometry(page)
    except CorruptSourceDocumentError:
        raise
    except Exception as e:
        raise CorruptSourceDocumentError(str(e) or type(e).__name__) from e
    return reader


def is_standard_encodable(text: str) -> bool:
    """True when every character exists in WinAnsiEncoding, which the standard fonts use."""
    try:
        text.encode("cp1252")
    except UnicodeEncodeError:
        return False
    return True


def register_font_program(font: EmbeddedFont) -> str:
    """Register TrueType bytes with ReportLab once and return the font name."""
    digest = hashlib.sha1(font.data).hexdigest()[:12]
    font_name = f"Stamp-{font.font_ref}-{digest}"

    with _font_registry_lock:
        if font_name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(font_name, io.BytesIO(font.data)))
    return font_name


class EmbeddingSerializer:
    """Produces new PDF bytes with every annotation drawn into its page."""

    def __init__(self, transformer: CoordinateTransformer, resolver: FontResolver):
        self.transformer = transformer
        self.resolver = resolver

    async def embed(
        self,
        document_bytes: bytes,
        annotations: Sequence[SignatureAnnotation],
        overlay_geometry_per_page: Mapping[int, OverlayGeometry],
        default_geometry: Optional[OverlayGeometry] = None
    ) -> EmbedResult:
        reader = read_document(document_bytes)
        page_count = len(reader.pages)

        # Geometry first: any failure here aborts before fonts are fetched.
        stamps = self._plan(reader, annotations, overlay_geometry_per_page, default_geometry)

        resolutions = await self._resolve_fonts(stamps)
        font_names, warnings = self._font_handles(stamps, resolutions)

        groups = self._group_by_page(stamps)
        overlays = {
            page_index: self._render_overlay(page_stamps, font_names)
            for page_index, page_stamps in groups.items()
        }

        buffer = io.BytesIO()
        try:
            writer = PdfWriter(clone_from=reader)
            for page_index, overlay in overlays.items():
                self._merge(writer.pages[page_index], overlay, groups[page_index][0].page)
            writer.write(buffer)
        except Exception as e:
            # Broken content streams or objects only surface when pages are copied
            raise CorruptSourceDocumentError(str(e) or type(e).__name__) from e
        output = buffer.getvalue()
        buffer.close()

        logger.info(
            f"Embedded {len(stamps)} stamp(s) into {page_count}-page document "
            f"({len(document_bytes)} -> {len(output)} bytes, {len(warnings)} warning(s))"
        )
        return EmbedResult(document_bytes=output, page_count=page_count, warnings=tuple(warnings))

    def _plan(
        self,
        reader: PdfReader,
        annotations: Sequence[SignatureAnnotation],
        overlay_geometry_per_page: Mapping[int, OverlayGeometry],
        default_geometry: Optional[OverlayGeometry]
    ) -> List[_Stamp]:
        page_count = len(reader.pages)
        stamps = []
        for annotation in annotations:
            check_page_index(annotation.page, page_count)

            overlay = overlay_geometry_per_page.get(annotation.page, default_geometry)
            if overlay is None:
                raise DegenerateGeometryError("no overlay geometry recorded", page=annotation.page)

            page_index = annotation.page - 1
            page = page_geometry(reader.pages[page_index])
            placement = self.transformer.to_native(
                annotation.x,
                annotation.y,
                annotation.font_size,
                overlay,
                page,
                page_number=annotation.page
            )
            stamps.append(_Stamp(annotation, page_index, page, placement))
        return stamps

    async def _resolve_fonts(self, stamps: List[_Stamp]) -> Dict[str, FontResolution]:
        font_refs = list(dict.fromkeys(s.annotation.font_ref.value for s in stamps))
        if not font_refs:
            return {}
        results = await asyncio.gather(*(self.resolver.resolve(ref) for ref in font_refs))
        return dict(zip(font_refs, results))

    def _font_handles(
        self,
        stamps: List[_Stamp],
        resolutions: Dict[str, FontResolution]
    ) -> Tuple[Dict[str, str], List[EmbedWarning]]:
        """Map each font ref to a ReportLab font name; collect per-annotation fallbacks."""
        font_names: Dict[str, str] = {}
        failures: Dict[str, str] = {}
        standard_refs = set()

        for font_ref, resolution in resolutions.items():
            source = resolution.source
            if isinstance(source, EmbeddedFont):
                try:
                    font_names[font_ref] = register_font_program(source)
                    continue
                except Exception as e:
                    message = f"Font program for {font_ref} could not be loaded: {e}"
                    logger.warning(message)
                    failures[font_ref] = message
                    source = standard_font_for(font_ref)
            elif resolution.warning:
                failures[font_ref] = resolution.warning

            font_names[font_ref] = source.name
            standard_refs.add(font_ref)

        warnings = []
        for s in stamps:
            font_ref = s.annotation.font_ref.value
            if font_ref in failures:
                warnings.append(EmbedWarning(
                    annotation_id=s.annotation.id,
                    font_ref=font_ref,
                    message=failures[font_ref]
                ))
            if font_ref in standard_refs and not is_standard_encodable(s.annotation.text):
                warnings.append(EmbedWarning(
                    annotation_id=s.annotation.id,
                    font_ref=font_ref,
                    message=f"{font_names[font_ref]} cannot draw some characters of this signature",
                    code="UNSUPPORTED_CHARACTERS"
                ))
        return font_names, warnings

    @staticmethod
    def _group_by_page(stamps: List[_Stamp]) -> Dict[int, List[_Stamp]]:
        by_page: Dict[int, List[_Stamp]] = {}
        for stamp in stamps:
            by_page.setdefault(stamp.page_index, []).append(stamp)
        return dict(sorted(by_page.items()))

    @staticmethod
    def _render_overlay(stamps: List[_Stamp], font_names: Dict[str, str]) -> bytes:
        """Draw stamps, in order, on a single overlay page in page-box-local coordinates."""
        page = stamps[0].page
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(page.width, page.height))

        for stamp in stamps:
            annotation = stamp.annotation
            r, g, b = to_native_color(annotation.color)
            pdf.setFillColorRGB(r, g, b)
            pdf.setFont(font_names[annotation.font_ref.value], stamp.placement.font_size)
            pdf.drawString(
                stamp.placement.x - page.origin_x,
                stamp.placement.y - page.origin_y,
                annotation.text
            )

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    @staticmethod
    def _merge(target_page, overlay_bytes: bytes, page: PageGeometry) -> None:
        overlay_page = PdfReader(io.BytesIO(overlay_bytes)).pages[0]
        if page.origin_x or page.origin_y:
            target_page.merge_transformed_page(
                overlay_page,
                Transformation().translate(tx=page.origin_x, ty=page.origin_y)
            )
        else:
            target_page.merge_page(overlay_page)

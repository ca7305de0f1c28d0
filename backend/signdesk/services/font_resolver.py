"""
Font resolution for signature stamps.

Maps a logical font id to either the raw bytes of a TrueType program
(EmbeddedFont) or one of the PDF standard fonts (StandardFont), which every
viewer provides without embedding. Failed loads never abort an embed: the
resolver falls back to the standard font and reports why.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Union

import httpx

from signdesk.models.annotation import FontRef
from signdesk.utils.exceptions import FontFetchFailedError

logger = logging.getLogger(__name__)

# Logical font id -> font file name (None means "use a standard font")
FONT_FILES: Dict[FontRef, Optional[str]] = {
    FontRef.GREAT_VIBES: "GreatVibes-Regular.ttf",
    FontRef.PACIFICO: "Pacifico-Regular.ttf",
    FontRef.SATISFY: "Satisfy-Regular.ttf",
    FontRef.BRUSH_SCRIPT: "BrushScriptMT.ttf",
    FontRef.ARIAL: None,
    FontRef.TIMES_NEW_ROMAN: None,
}

DEFAULT_STANDARD_FONT = "Helvetica"

STANDARD_FONT_FAMILIES: Dict[FontRef, str] = {
    FontRef.ARIAL: "Helvetica",
    FontRef.TIMES_NEW_ROMAN: "Times-Roman",
}

# TrueType, Apple TrueType, OpenType/CFF, TrueType collection
FONT_MAGIC = (b"\x00\x01\x00\x00", b"true", b"OTTO", b"ttcf")


@dataclass(frozen=True)
class EmbeddedFont:
    font_ref: str
    data: bytes


@dataclass(frozen=True)
class StandardFont:
    name: str = DEFAULT_STANDARD_FONT


FontSource = Union[EmbeddedFont, StandardFont]


@dataclass(frozen=True)
class FontResolution:
    source: FontSource
    warning: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.warning is not None


class FontCatalog:
    """Immutable logical-font -> location table (file path or URL)."""

    def __init__(self, locations: Mapping[str, str]):
        self._locations = MappingProxyType(dict(locations))

    @classmethod
    def from_settings(cls, settings) -> "FontCatalog":
        base_url = (settings.font_base_url or "").rstrip("/")
        font_dir = Path(settings.font_dir)

        locations = {}
        for font_ref, filename in FONT_FILES.items():
            if not filename:
                continue
            if base_url:
                locations[font_ref.value] = f"{base_url}/{filename}"
            else:
                locations[font_ref.value] = str(font_dir / filename)
        return cls(locations)

    @property
    def locations(self) -> Mapping[str, str]:
        return self._locations

    def location_for(self, font_ref: str) -> Optional[str]:
        return self._locations.get(font_ref)


def standard_font_for(font_ref: str) -> StandardFont:
    try:
        return StandardFont(STANDARD_FONT_FAMILIES.get(FontRef(font_ref), DEFAULT_STANDARD_FONT))
    except ValueError:
        return StandardFont(DEFAULT_STANDARD_FONT)


class FontResolver:
    """Resolves logical font ids to FontSource values."""

    def __init__(
        self,
        catalog: FontCatalog,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.catalog = catalog
        self.timeout = timeout
        self.transport = transport
        self._cache: Dict[str, bytes] = {}

    async def resolve(self, font_ref) -> FontResolution:
        ref = font_ref.value if isinstance(font_ref, FontRef) else str(font_ref)
        location = self.catalog.location_for(ref)
        if not location:
            return FontResolution(standard_font_for(ref))

        try:
            data = await self.fetch_font_bytes(ref, location)
        except FontFetchFailedError as e:
            logger.warning(f"Falling back to standard font for {ref}: {e.message}")
            return FontResolution(standard_font_for(ref), warning=e.message)

        return FontResolution(EmbeddedFont(font_ref=ref, data=data))

    async def fetch_font_bytes(self, font_ref: str, location: str) -> bytes:
        """Load and sanity-check font bytes; raises FontFetchFailedError."""
        if font_ref in self._cache:
            return self._cache[font_ref]

        if location.startswith(("http://", "https://")):
            data = await self._fetch_remote(font_ref, location)
        else:
            data = await self._read_local(font_ref, location)

        if len(data) < 12 or not data.startswith(FONT_MAGIC):
            raise FontFetchFailedError(font_ref, location, "not a TrueType/OpenType font program")

        self._cache[font_ref] = data
        return data

    async def _fetch_remote(self, font_ref: str, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise FontFetchFailedError(font_ref, url, f"HTTP {e.response.status_code}")
            except httpx.HTTPError as e:
                raise FontFetchFailedError(font_ref, url, str(e) or type(e).__name__)
            logger.debug(f"Fetched font {font_ref} from {url}: {len(response.content)} bytes")
            return response.content

    async def _read_local(self, font_ref: str, path: str) -> bytes:
        try:
            return await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise FontFetchFailedError(font_ref, path, e.strerror or str(e))

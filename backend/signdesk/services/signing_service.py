"""
Save orchestration: fetch the source PDF, burn in the session's stamps,
persist the result and emit the document status transition.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from signdesk.config import settings
from signdesk.services.coordinate_transformer import CoordinateTransformer, OverlayGeometry
from signdesk.services.document_fetcher import DocumentFetcher
from signdesk.services.embedding_serializer import EmbeddingSerializer, EmbedResult, EmbedWarning
from signdesk.services.font_resolver import FontCatalog, FontResolver
from signdesk.services.storage_service import StorageService, get_storage_service
from signdesk.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SIGNED_STATUS = "signed"


@dataclass(frozen=True)
class DocumentUpdateIntent:
    """Status transition for the document record; only built after a confirmed upload."""
    signed_url: str
    status: str = SIGNED_STATUS

    def to_dict(self) -> dict:
        return {"status": self.status, "signed_url": self.signed_url}


@dataclass(frozen=True)
class SaveResult:
    document_id: str
    file_name: str
    intent: DocumentUpdateIntent
    page_count: int
    warnings: Tuple[EmbedWarning, ...] = field(default_factory=tuple)


def suggested_file_name(document_id: str) -> str:
    return f"signed-{document_id}.pdf"


def storage_key(user_id: str, document_id: str) -> str:
    return f"{user_id}/{suggested_file_name(document_id)}"


class SigningService:
    """Runs the embed-and-persist unit of work for an editing session."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        serializer: EmbeddingSerializer,
        storage: Optional[StorageService] = None,
        default_geometry: Optional[OverlayGeometry] = None
    ):
        self.fetcher = fetcher
        self.serializer = serializer
        self._storage = storage
        self.default_geometry = default_geometry

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = get_storage_service()
        return self._storage

    async def render(self, session) -> EmbedResult:
        """Fetch the session's source document and embed its annotations."""
        document_bytes = await self.fetcher.fetch(session.original_url)
        return await self.serializer.embed(
            document_bytes,
            session.store.all(),
            session.overlay_geometry,
            default_geometry=self.default_geometry
        )

    async def save(self, session, record_updater: Callable[[str, DocumentUpdateIntent], Any]) -> SaveResult:
        """
        Embed, persist and hand the status transition to the record updater.

        Nothing is uploaded unless embedding succeeds, and the intent is only
        emitted after the upload returns a URL. On success the session's
        annotations are discarded.

        Args:
            session: EditingSession with annotations and overlay geometry
            record_updater: callable applying the intent to the document record

        Returns:
            SaveResult with the signed URL and per-annotation font warnings
        """
        if len(session.store) == 0:
            raise ValidationError("Please add at least one signature", field="annotations")

        result = await self.render(session)
        if session.discarded:
            # Discarded while the source was being fetched or stamped
            raise NotFoundError("Editing session", session.id)

        key = storage_key(session.user_id, session.document_id)
        signed_url = await self.storage.upload(result.document_bytes, key)

        intent = DocumentUpdateIntent(signed_url=signed_url)
        record_updater(session.document_id, intent)

        session.store.clear()
        logger.info(f"Document {session.document_id} signed with {result.page_count} page(s): {signed_url}")

        return SaveResult(
            document_id=session.document_id,
            file_name=suggested_file_name(session.document_id),
            intent=intent,
            page_count=result.page_count,
            warnings=result.warnings,
        )


def build_signing_service(storage: Optional[StorageService] = None) -> SigningService:
    transformer = CoordinateTransformer(y_offset=settings.stamp_y_offset)
    resolver = FontResolver(FontCatalog.from_settings(settings), timeout=settings.http_timeout_seconds)
    return SigningService(
        fetcher=DocumentFetcher(timeout=settings.http_timeout_seconds),
        serializer=EmbeddingSerializer(transformer, resolver),
        storage=storage,
        default_geometry=OverlayGeometry(settings.default_overlay_width, settings.default_overlay_height),
    )


# Singleton instance (lazy initialization)
_signing_service: Optional[SigningService] = None


def get_signing_service() -> SigningService:
    """Get the signing service singleton."""
    global _signing_service
    if _signing_service is None:
        _signing_service = build_signing_service()
    return _signing_service

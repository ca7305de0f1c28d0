"""
In-memory editing sessions.

A session holds one document's AnnotationStore and the overlay geometry the
client reported for each page. Sessions are never persisted; discarding a
session (or saving it successfully) drops its annotations.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from signdesk.services.annotation_store import AnnotationStore
from signdesk.services.coordinate_transformer import OverlayGeometry, check_page_index
from signdesk.services.document_fetcher import DocumentFetcher
from signdesk.services.embedding_serializer import read_document
from signdesk.utils.exceptions import DegenerateGeometryError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class EditingSession:
    document_id: str
    user_id: str
    original_url: str
    page_count: int
    store: AnnotationStore
    overlay_geometry: Dict[int, OverlayGeometry] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.utcnow)
    discarded: bool = False

    def record_geometry(self, page: int, width: float, height: float) -> OverlayGeometry:
        check_page_index(page, self.page_count)
        if width <= 0 or height <= 0:
            raise DegenerateGeometryError(f"overlay size {width}x{height} must be positive", page=page)
        geometry = OverlayGeometry(float(width), float(height))
        self.overlay_geometry[page] = geometry
        return geometry

    def geometry_for(self, page: int, default: Optional[OverlayGeometry] = None) -> Optional[OverlayGeometry]:
        return self.overlay_geometry.get(page, default)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "page_count": self.page_count,
            "selected_id": self.store.selected_id,
            "annotations": [a.to_dict() for a in self.store.all()],
            "overlay_geometry": {
                str(page): {"width": g.width, "height": g.height}
                for page, g in sorted(self.overlay_geometry.items())
            },
            "created_at": self.created_at.isoformat(),
        }


class EditingSessionService:
    """Registry of open editing sessions."""

    def __init__(self, fetcher: DocumentFetcher):
        self.fetcher = fetcher
        self._sessions: Dict[str, EditingSession] = {}
        self._lock = threading.Lock()

    async def open_session(self, document_id: str, user_id: str, original_url: str) -> EditingSession:
        """Fetch the source once to learn its page count and start a session."""
        document_bytes = await self.fetcher.fetch(original_url)
        page_count = len(read_document(document_bytes).pages)

        session = EditingSession(
            document_id=document_id,
            user_id=user_id,
            original_url=original_url,
            page_count=page_count,
            store=AnnotationStore(page_count),
        )
        with self._lock:
            self._sessions[session.id] = session

        logger.info(f"Opened editing session {session.id} for document {document_id} ({page_count} pages)")
        return session

    def get_session(self, session_id: str) -> EditingSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Editing session", session_id)
        return session

    def discard_session(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.discarded = True
        session.store.clear()
        logger.info(f"Discarded editing session {session_id}")
        return True

    def close_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


# Singleton instance (lazy initialization)
_editing_session_service: Optional[EditingSessionService] = None


def get_editing_session_service() -> EditingSessionService:
    """Get the editing session service singleton."""
    global _editing_session_service
    if _editing_session_service is None:
        from signdesk.config import settings
        _editing_session_service = EditingSessionService(DocumentFetcher(timeout=settings.http_timeout_seconds))
    return _editing_session_service

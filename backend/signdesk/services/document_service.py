import logging
from datetime import datetime

from sqlalchemy.orm import Session

from signdesk.models.document import Document, DocumentStatus
from signdesk.services.signing_service import DocumentUpdateIntent
from signdesk.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class DocumentService:
    """Reads and updates document records."""

    def __init__(self, db: Session):
        self.db = db

    def create_document(self, user_id: str, name: str, original_url: str) -> Document:
        document = Document(
            user_id=user_id,
            name=name,
            original_url=original_url,
            status=DocumentStatus.UNSIGNED.value,
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        logger.info(f"Registered document {document.id} ({name}) for user {user_id}")
        return document

    def get_document(self, document_id: str) -> Document:
        document = self.db.query(Document).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document", document_id)
        return document

    def apply_intent(self, document_id: str, intent: DocumentUpdateIntent) -> Document:
        """Apply a status/URL transition emitted after a successful save.

        Status and signed URL are always written in the same commit.
        """
        if intent.status != DocumentStatus.SIGNED.value or not intent.signed_url:
            raise ValidationError(
                "Document update intent must set status 'signed' together with a signed URL",
                details={"status": intent.status, "signed_url": intent.signed_url}
            )

        document = self.get_document(document_id)
        document.status = intent.status
        document.signed_url = intent.signed_url
        document.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(document)

        logger.info(f"Document {document_id} marked {intent.status}: {intent.signed_url}")
        return document

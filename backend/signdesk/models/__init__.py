from signdesk.models.document import Document, DocumentStatus
from signdesk.models.annotation import SignatureAnnotation, FontRef

__all__ = [
    "Document",
    "DocumentStatus",
    "SignatureAnnotation",
    "FontRef",
]

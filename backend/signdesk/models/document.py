import uuid
import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from signdesk.database import Base


class DocumentStatus(str, enum.Enum):
    UNSIGNED = "unsigned"
    SIGNED = "signed"

    @property
    def display_name(self) -> str:
        return {
            "unsigned": "Pending",
            "signed": "Signed",
        }.get(self.value, self.value)


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    original_url = Column(Text, nullable=False)
    signed_url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=DocumentStatus.UNSIGNED.value, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

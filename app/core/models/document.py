"""Generic document row. One row per document path; the collection is the path minus its last segment."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """A JSON document addressed by a slash-separated path (e.g. schools/s1/classes/c1/students/st1)."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_collection_doc_id", "collection", "doc_id"),
    )

    path = Column(String(512), primary_key=True)
    collection = Column(String(512), nullable=False)
    doc_id = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

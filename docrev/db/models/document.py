import uuid
from sqlalchemy import CheckConstraint, DateTime, Integer, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column
from docrev.db.base import Base

class DocumentRecord(Base):
    """One stored document. `revision` counts committed writes for the row."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    any_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('revision >= 1', name='chk_documents_revision_positive'),
    )

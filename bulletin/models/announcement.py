import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, Date, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from bulletin.database import Base


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    internal_id = Column(String(100), nullable=True)  # short operator-facing tag
    category = Column(String(100), nullable=True)
    summary = Column(Text, nullable=True)  # rich text (HTML)
    target_audience = Column(Text, nullable=True)  # rich text (HTML)
    submission_method = Column(Text, nullable=True)  # rich text (HTML)
    application_start_date = Column(Date, nullable=True)
    application_end_date = Column(Date, nullable=True)
    application_limitations = Column(String(1), nullable=True)  # "Y" | "N"
    external_urls = Column(JSON, nullable=True)  # [{"name": ..., "url": ...}]
    is_active = Column(Boolean, nullable=False, default=False)
    # Opaque id of the mirrored document in the knowledge index; set only after a successful sync
    external_document_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    attachments = relationship(
        "Attachment",
        back_populates="announcement",
        order_by="Attachment.display_order",
        passive_deletes=True,
    )


class AnnouncementView(Base):
    __tablename__ = "announcement_views"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    announcement_id = Column(
        String(36),
        ForeignKey("announcements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    viewed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

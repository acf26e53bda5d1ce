"""
Relational access for announcements, their attachments and view log rows.
The database is the source of truth; index and blob stores only mirror it.
Write helpers flush but never commit: orchestrators own the transaction boundary.
"""
from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from bulletin.models.announcement import Announcement, AnnouncementView
from bulletin.models.attachment import Attachment
from bulletin.services.blob_store import ATTACHMENTS_PREFIX


def get_announcement(db: Session, announcement_id: str) -> Announcement | None:
    return db.query(Announcement).filter(Announcement.id == announcement_id).first()


def list_announcements(db: Session, active_only: bool = False) -> list[Announcement]:
    query = db.query(Announcement)
    if active_only:
        query = query.filter(Announcement.is_active.is_(True))
    return query.order_by(Announcement.created_at.desc()).all()


def get_external_document_id(db: Session, announcement_id: str) -> str | None:
    row = (
        db.query(Announcement.external_document_id)
        .filter(Announcement.id == announcement_id)
        .first()
    )
    return row[0] if row else None


def get_external_document_ids(db: Session, announcement_ids: list[str]) -> dict[str, str]:
    """{announcement_id: document_id} for the given ids that have a mirrored document."""
    if not announcement_ids:
        return {}
    rows = (
        db.query(Announcement.id, Announcement.external_document_id)
        .filter(
            Announcement.id.in_(announcement_ids),
            Announcement.external_document_id.isnot(None),
        )
        .all()
    )
    return {r[0]: r[1] for r in rows}


def set_external_document_id(db: Session, announcement_id: str, document_id: str | None) -> None:
    """Only touches external_document_id; updated_at stays as the editor left it."""
    db.query(Announcement).filter(Announcement.id == announcement_id).update(
        {Announcement.external_document_id: document_id,
         Announcement.updated_at: Announcement.updated_at},
        synchronize_session="fetch",
    )


def clear_external_document_id_by_value(db: Session, document_id: str) -> int:
    return db.query(Announcement).filter(Announcement.external_document_id == document_id).update(
        {Announcement.external_document_id: None,
         Announcement.updated_at: Announcement.updated_at},
        synchronize_session="fetch",
    )


def insert_announcement(db: Session, **fields) -> Announcement:
    item = Announcement(**fields)
    db.add(item)
    db.flush()
    return item


def list_attachments(db: Session, announcement_id: str) -> list[Attachment]:
    """Attachments in display order."""
    return (
        db.query(Attachment)
        .filter(Attachment.announcement_id == announcement_id)
        .order_by(Attachment.display_order, Attachment.created_at)
        .all()
    )


def get_attachment_by_stored_name(db: Session, name: str) -> Attachment | None:
    """Lookup by the last path segment of stored_file_path (used by public download links)."""
    return (
        db.query(Attachment)
        .filter(Attachment.stored_file_path == f"{ATTACHMENTS_PREFIX}/{name}")
        .first()
    )


def get_attachment_paths(db: Session, announcement_ids: list[str]) -> list[str]:
    if not announcement_ids:
        return []
    rows = (
        db.query(Attachment.stored_file_path)
        .filter(Attachment.announcement_id.in_(announcement_ids))
        .all()
    )
    return [r[0] for r in rows]


def insert_attachment(
    db: Session,
    announcement_id: str,
    *,
    file_name: str,
    stored_file_path: str,
    file_size: int,
    mime_type: str | None,
    display_order: int,
) -> Attachment:
    att = Attachment(
        announcement_id=announcement_id,
        file_name=file_name,
        stored_file_path=stored_file_path,
        file_size=file_size,
        mime_type=mime_type,
        display_order=display_order,
    )
    db.add(att)
    return att


def delete_attachments_by_ids(db: Session, attachment_ids: list[str]) -> int:
    if not attachment_ids:
        return 0
    return db.query(Attachment).filter(Attachment.id.in_(attachment_ids)).delete(synchronize_session=False)


def delete_attachments_for(db: Session, announcement_ids: list[str]) -> int:
    return (
        db.query(Attachment)
        .filter(Attachment.announcement_id.in_(announcement_ids))
        .delete(synchronize_session=False)
    )


def delete_views_for(db: Session, announcement_ids: list[str]) -> int:
    return (
        db.query(AnnouncementView)
        .filter(AnnouncementView.announcement_id.in_(announcement_ids))
        .delete(synchronize_session=False)
    )


def delete_announcements(db: Session, announcement_ids: list[str]) -> int:
    return (
        db.query(Announcement)
        .filter(Announcement.id.in_(announcement_ids))
        .delete(synchronize_session=False)
    )


def record_view(db: Session, announcement_id: str) -> AnnouncementView:
    view = AnnouncementView(announcement_id=announcement_id)
    db.add(view)
    return view


def count_views(db: Session, announcement_id: str) -> int:
    return db.query(AnnouncementView).filter(AnnouncementView.announcement_id == announcement_id).count()


def list_announcement_dates(db: Session) -> list[tuple[str, date | None, datetime]]:
    """(id, application_end_date, created_at) for every announcement, active or not."""
    rows = db.query(
        Announcement.id,
        Announcement.application_end_date,
        Announcement.created_at,
    ).all()
    return [(r[0], r[1], r[2]) for r in rows]


def count_all_views(db: Session) -> int:
    return db.query(func.count(AnnouncementView.id)).scalar() or 0


def count_views_by_day(db: Session) -> list[tuple[str, int]]:
    """[(YYYY-MM-DD, views)] oldest day first."""
    day = func.date(AnnouncementView.viewed_at)
    rows = (
        db.query(day, func.count(AnnouncementView.id))
        .filter(AnnouncementView.viewed_at.isnot(None))
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [(str(r[0]), r[1]) for r in rows]

"""
Multi-store workflows: batch delete and duplicate.

Neither is atomic across stores. Index and blob steps are best effort and run before the
relational write, which always comes last; a crash can leak an index document or a blob but
never leaves a row pointing at something already deleted.
"""
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bulletin.config import get_settings
from bulletin.models.announcement import Announcement
from bulletin.repositories import announcement_repository as repo
from bulletin.services.blob_store import BlobStoreError, LocalBlobStore
from bulletin.services.index_client import IndexClient
from bulletin.services.index_sync import delete_documents

logger = logging.getLogger(__name__)

# Columns never carried over to a duplicate
NOT_COPIED = {"id", "created_at", "updated_at", "external_document_id", "is_active", "title"}


@dataclass
class BatchDeleteResult:
    deleted_count: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class DuplicateResult:
    new_announcement_id: str
    title: str
    attachments_copied: int = 0
    skipped: list[str] = field(default_factory=list)  # file names whose blob could not be copied


def batch_delete(
    db: Session,
    announcement_ids: list[str],
    client: IndexClient,
    blob_store: LocalBlobStore,
) -> BatchDeleteResult:
    """
    1. delete each mirrored index document (parallel, best effort)
    2. one bulk blob removal for all attachments (best effort)
    3. one transaction: attachments, view rows, announcements
    Returns the number of announcement rows actually deleted.
    """
    ids = list(dict.fromkeys(i for i in announcement_ids if i))
    result = BatchDeleteResult()
    if not ids:
        return result

    document_ids = repo.get_external_document_ids(db, ids)
    if document_ids and not client.configured:
        result.errors.append("Index configuration missing; mirrored documents left in place")
        logger.warning("Batch delete: index not configured, %s documents left in the index", len(document_ids))
    elif document_ids:
        outcomes = delete_documents(client, list(document_ids.values()))
        for announcement_id, document_id in document_ids.items():
            outcome = outcomes[document_id]
            if not outcome.ok:
                msg = f"Index document {document_id} of {announcement_id}: {outcome.error}"
                result.errors.append(msg)
                logger.warning("Batch delete: %s", msg)

    paths = repo.get_attachment_paths(db, ids)
    if paths:
        for path, error in blob_store.remove(paths).items():
            if error:
                result.errors.append(f"Blob {path}: {error}")

    try:
        repo.delete_attachments_for(db, ids)
        repo.delete_views_for(db, ids)
        result.deleted_count = repo.delete_announcements(db, ids)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Batch delete: relational delete failed for %s", ids)
        raise

    logger.info("Batch delete: removed %s announcements (%s sub-step errors)", result.deleted_count, len(result.errors))
    return result


def duplicate_title(title: str, today: date | None = None) -> str:
    """'<title>_MMDD_<suffix>'."""
    today = today or date.today()
    return f"{title}_{today:%m%d}_{get_settings().duplicate_title_suffix}"


def duplicate(
    db: Session,
    announcement_id: str,
    blob_store: LocalBlobStore,
    today: date | None = None,
) -> DuplicateResult | None:
    """
    Clone an announcement and its attachments. The clone is inactive, unsynced (no index
    document) and its attachments point at fresh copies of the blobs. Attachments whose blob
    cannot be copied are skipped. Returns None if the source does not exist.
    """
    source = repo.get_announcement(db, announcement_id)
    if source is None:
        return None

    fields = {
        column.key: getattr(source, column.key)
        for column in Announcement.__table__.columns
        if column.key not in NOT_COPIED
    }
    title = duplicate_title(source.title, today)
    source_attachments = repo.list_attachments(db, announcement_id)
    copied_paths: list[str] = []

    try:
        clone = repo.insert_announcement(db, title=title, is_active=False, external_document_id=None, **fields)
        result = DuplicateResult(new_announcement_id=clone.id, title=title)
        for att in source_attachments:
            try:
                new_path = blob_store.copy(att.stored_file_path)
            except BlobStoreError as e:
                logger.error("Duplicate: copy failed for %s (%s): %s", att.file_name, att.stored_file_path, e)
                result.skipped.append(att.file_name)
                continue
            copied_paths.append(new_path)
            repo.insert_attachment(
                db,
                clone.id,
                file_name=att.file_name,
                stored_file_path=new_path,
                file_size=att.file_size,
                mime_type=att.mime_type,
                display_order=result.attachments_copied,
            )
            result.attachments_copied += 1
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Duplicate failed for %s", announcement_id)
        if copied_paths:
            blob_store.remove(copied_paths)
        raise

    logger.info(
        "Duplicated announcement %s -> %s (%s attachments, %s skipped)",
        announcement_id, result.new_announcement_id, result.attachments_copied, len(result.skipped),
    )
    return result

"""
Keeps one announcement's mirrored index document in step with the database.

    no id      --create ok-->          id
    id         --update ok-->          id (unchanged)
    id         --update not found-->   create --ok--> new id   (drift repair)
    any        --other failure-->      unchanged, error returned

external_document_id is written only after the index confirmed the document, so a failed call
leaves the stored reference as it was and the caller can simply retry.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from bulletin.config import get_settings
from bulletin.repositories import announcement_repository as repo
from bulletin.services.document_formatter import format_announcement
from bulletin.services.index_client import IndexClient, IndexOutcome, IndexResult, config_missing

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    ok: bool
    document_id: str | None = None
    error: str | None = None
    outcome: IndexOutcome | None = None


@dataclass
class RebuildResult:
    ok: bool
    count: int = 0
    failed: list[str] = field(default_factory=list)  # announcement ids that could not be uploaded
    error: str | None = None


def _persist_document_id(db: Session, announcement_id: str, document_id: str) -> None:
    repo.set_external_document_id(db, announcement_id, document_id)
    db.commit()


def sync_announcement(db: Session, announcement_id: str, client: IndexClient) -> SyncResult:
    """Create or update the index document for one announcement; repairs drift transparently."""
    announcement = repo.get_announcement(db, announcement_id)
    if announcement is None:
        return SyncResult(ok=False, error="Announcement not found")
    if not client.configured:
        missing = config_missing()
        return SyncResult(ok=False, error=missing.error, outcome=missing.outcome)

    settings = get_settings()
    attachments = repo.list_attachments(db, announcement_id)
    text = format_announcement(announcement, attachments, app_url=settings.app_url)
    current_id = announcement.external_document_id

    if current_id:
        result = client.update(current_id, announcement.title, text)
        if result.outcome is IndexOutcome.NOT_FOUND:
            logger.warning(
                "Index document %s for announcement %s is gone; creating a new one",
                current_id, announcement_id,
            )
            result = client.create(announcement.title, text)
    else:
        result = client.create(announcement.title, text)

    if not result.ok:
        logger.error("Index sync failed for announcement %s: %s", announcement_id, result.error)
        return SyncResult(ok=False, error=result.error, outcome=result.outcome)

    if result.document_id != current_id:
        _persist_document_id(db, announcement_id, result.document_id)
    return SyncResult(ok=True, document_id=result.document_id, outcome=result.outcome)


def delete_index_entry(db: Session, identifier: str, client: IndexClient, is_doc_id: bool = False) -> bool:
    """
    Remove the mirrored document. `identifier` is a document id when is_doc_id, else an
    announcement id whose stored reference is used. Nothing to delete counts as success.
    """
    if is_doc_id:
        document_id = identifier
    else:
        document_id = repo.get_external_document_id(db, identifier)
    if not document_id:
        return True

    result = client.delete(document_id)
    if not result.ok:
        logger.error("Index delete failed for document %s: %s", document_id, result.error)
        return False
    if not is_doc_id:
        repo.set_external_document_id(db, identifier, None)
    else:
        repo.clear_external_document_id_by_value(db, document_id)
    db.commit()
    return True


def delete_documents(client: IndexClient, document_ids: list[str], workers: int | None = None) -> dict[str, IndexResult]:
    """Delete many documents independently, in parallel up to `workers`."""
    if not document_ids:
        return {}
    workers = max(1, workers or get_settings().index_delete_workers)
    with ThreadPoolExecutor(max_workers=min(workers, len(document_ids))) as pool:
        results = list(pool.map(client.delete, document_ids))
    return dict(zip(document_ids, results))


def rebuild_index(db: Session, client: IndexClient) -> RebuildResult:
    """
    Clear the dataset and re-upload every active announcement.
    Persists the new document ids; inactive announcements lose their reference.
    """
    if not client.configured:
        return RebuildResult(ok=False, error=config_missing().error)

    listed = client.list_document_ids()
    if not listed.ok:
        return RebuildResult(ok=False, error=listed.error)
    logger.info("Index rebuild: clearing %s existing documents", len(listed.document_ids))
    for document_id, result in delete_documents(client, listed.document_ids).items():
        if not result.ok:
            logger.warning("Index rebuild: could not delete %s: %s", document_id, result.error)

    settings = get_settings()
    rebuilt = RebuildResult(ok=True)
    for announcement in repo.list_announcements(db):
        if not announcement.is_active:
            if announcement.external_document_id:
                repo.set_external_document_id(db, announcement.id, None)
            continue
        text = format_announcement(announcement, repo.list_attachments(db, announcement.id), app_url=settings.app_url)
        result = client.create(announcement.title, text)
        if result.ok:
            repo.set_external_document_id(db, announcement.id, result.document_id)
            rebuilt.count += 1
        else:
            # the old document was cleared above, so the reference is stale either way
            repo.set_external_document_id(db, announcement.id, None)
            rebuilt.failed.append(announcement.id)
            logger.error("Index rebuild: upload failed for %s: %s", announcement.id, result.error)
    db.commit()
    logger.info("Index rebuild: uploaded %s announcements, %s failed", rebuilt.count, len(rebuilt.failed))
    return rebuilt

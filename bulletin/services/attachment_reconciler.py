"""
Bring an announcement's attachments in line with the editor's final list.

The desired list mixes KeepAttachment markers (existing rows) with NewAttachment payloads.
Each NewAttachment carries its own correlation_id through the upload, so stored metadata is
matched back to the exact entry that produced it, even for files with identical name and size.

Save is partial-success by nature: a failed upload is reported and left out, the rest is
persisted. display_order is always re-packed to 0..N-1 in the final order.
"""
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bulletin.models.attachment import Attachment
from bulletin.repositories import announcement_repository as repo
from bulletin.services.blob_store import BlobStoreError, LocalBlobStore, StoredBlob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeepAttachment:
    attachment_id: str


@dataclass
class NewAttachment:
    file_name: str
    data: bytes = field(repr=False)
    mime_type: str | None = None
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def size(self) -> int:
        return len(self.data)


DesiredEntry = KeepAttachment | NewAttachment


@dataclass
class FileError:
    file_name: str
    error: str


@dataclass
class ReconcileResult:
    upserted: list[Attachment] = field(default_factory=list)
    inserted: list[Attachment] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)


def _remove_blobs(blob_store: LocalBlobStore, paths: list[str]) -> None:
    if not paths:
        return
    for path, error in blob_store.remove(paths).items():
        if error:
            logger.warning("Attachment blob %s not removed: %s", path, error)


def _upload_new(blob_store: LocalBlobStore, desired: list[DesiredEntry], errors: list[FileError]) -> dict[str, StoredBlob]:
    """Upload every NewAttachment independently. Returns {correlation_id: stored blob}."""
    uploaded: dict[str, StoredBlob] = {}
    for entry in desired:
        if not isinstance(entry, NewAttachment):
            continue
        try:
            uploaded[entry.correlation_id] = blob_store.put(entry.data, entry.file_name, entry.mime_type)
        except BlobStoreError as e:
            logger.warning("Upload failed for %s: %s", entry.file_name, e)
            errors.append(FileError(entry.file_name, str(e)))
    return uploaded


def reconcile_attachments(
    db: Session,
    announcement_id: str,
    desired: list[DesiredEntry],
    removal_ids: list[str] | set[str],
    blob_store: LocalBlobStore,
) -> ReconcileResult | None:
    """
    Apply the desired attachment list. Returns None if the announcement does not exist.

    1. rows in removal_ids and not kept: blob removed (best effort), row deleted
    2. new payloads uploaded one by one; failures become per-file errors
    3. one transaction: kept rows get display_order, new rows inserted, removed rows deleted

    Persisted rows in neither desired nor removal_ids are kept after the desired entries,
    in their previous relative order.
    """
    if repo.get_announcement(db, announcement_id) is None:
        return None

    persisted = repo.list_attachments(db, announcement_id)
    by_id = {att.id: att for att in persisted}
    kept_ids = {e.attachment_id for e in desired if isinstance(e, KeepAttachment)}
    result = ReconcileResult()

    removing = [by_id[i] for i in dict.fromkeys(removal_ids) if i in by_id and i not in kept_ids]
    for i in removal_ids:
        if i not in by_id:
            logger.info("Attachment %s not on announcement %s; nothing to remove", i, announcement_id)
    _remove_blobs(blob_store, [att.stored_file_path for att in removing])

    uploaded = _upload_new(blob_store, desired, result.errors)

    final: list[Attachment | tuple[NewAttachment, StoredBlob]] = []
    placed: set[str] = set()
    for entry in desired:
        if isinstance(entry, KeepAttachment):
            att = by_id.get(entry.attachment_id)
            if att is None:
                result.errors.append(FileError(entry.attachment_id, "Attachment not found on this announcement"))
                continue
            if att.id in placed:
                continue
            placed.add(att.id)
            final.append(att)
        else:
            stored = uploaded.get(entry.correlation_id)
            if stored is not None:
                final.append((entry, stored))
    removing_ids = {att.id for att in removing}
    final.extend(att for att in persisted if att.id not in placed and att.id not in removing_ids)

    try:
        repo.delete_attachments_by_ids(db, list(removing_ids))
        for order, item in enumerate(final):
            if isinstance(item, Attachment):
                item.display_order = order
                result.upserted.append(item)
            else:
                entry, stored = item
                result.inserted.append(
                    repo.insert_attachment(
                        db,
                        announcement_id,
                        file_name=entry.file_name,
                        stored_file_path=stored.path,
                        file_size=stored.size,
                        mime_type=stored.mime_type,
                        display_order=order,
                    )
                )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Attachment save failed for announcement %s; discarding new uploads", announcement_id)
        _remove_blobs(blob_store, [stored.path for stored in uploaded.values()])
        raise

    result.removed = sorted(removing_ids)
    for att in result.inserted:
        db.refresh(att)
    return result

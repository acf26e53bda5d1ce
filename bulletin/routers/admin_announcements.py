"""
Admin endpoints driving the consistency core:
- POST /api/admin/announcements/sync-index: create/update or delete the mirrored index document
- POST /api/admin/announcements/rebuild-index: clear the dataset and re-upload active announcements
- POST /api/admin/announcements/batch-delete: index, blobs, then rows
- POST /api/admin/announcements/duplicate: inactive, unsynced copy with copied attachments
- PUT  /api/admin/announcements/{id}/attachments: apply final attachment order (multipart)
- GET  /api/admin/announcements/stats: totals, overdue announcements, daily views
- GET/PUT /api/admin/settings: operator overrides for index configuration
"""
import asyncio
import json
import logging
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from bulletin.auth import require_admin
from bulletin.database import get_db
from bulletin.routers.announcements import attachment_to_response
from bulletin.schemas.announcement import (
    AnnouncementStatsResponse,
    AttachmentOrderItem,
    BatchDeleteRequest,
    BatchDeleteResponse,
    DailyViews,
    DuplicateRequest,
    DuplicateResponse,
    FileErrorResponse,
    IndexSyncRequest,
    IndexSyncResponse,
    RebuildResponse,
    ReconcileResponse,
    SystemSettingsUpdate,
)
from bulletin.services import announcement_lifecycle, announcement_stats, index_sync, system_config
from bulletin.services.attachment_reconciler import KeepAttachment, NewAttachment, reconcile_attachments
from bulletin.services.blob_store import LocalBlobStore, get_blob_store
from bulletin.services.index_client import IndexClient, IndexOutcome, build_index_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

_order_adapter = TypeAdapter(list[AttachmentOrderItem])
_ids_adapter = TypeAdapter(list[str])


def get_index_client(db: Session = Depends(get_db)) -> IndexClient:
    return build_index_client(db)


@router.post("/announcements/sync-index", response_model=IndexSyncResponse)
def sync_index(
    body: IndexSyncRequest,
    db: Session = Depends(get_db),
    client: IndexClient = Depends(get_index_client),
):
    if body.action == "delete":
        if not index_sync.delete_index_entry(db, body.id, client, is_doc_id=body.is_doc_id):
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete index document")
        logger.info("Index document deleted for %s", body.id)
        return IndexSyncResponse(success=True, message="Index document deleted")

    result = index_sync.sync_announcement(db, body.id, client)
    if not result.ok:
        if result.error == "Announcement not found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
        code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if result.outcome is IndexOutcome.CONFIGURATION_MISSING
            else status.HTTP_502_BAD_GATEWAY
        )
        raise HTTPException(status_code=code, detail=result.error)
    logger.info("Announcement %s synced to index document %s", body.id, result.document_id)
    return IndexSyncResponse(success=True, document_id=result.document_id)


@router.post("/announcements/rebuild-index", response_model=RebuildResponse)
def rebuild_index(
    db: Session = Depends(get_db),
    client: IndexClient = Depends(get_index_client),
):
    result = index_sync.rebuild_index(db, client)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return RebuildResponse(success=True, count=result.count, failed=result.failed)


@router.post("/announcements/batch-delete", response_model=BatchDeleteResponse)
def batch_delete(
    body: BatchDeleteRequest,
    db: Session = Depends(get_db),
    client: IndexClient = Depends(get_index_client),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    result = announcement_lifecycle.batch_delete(db, body.ids, client, blob_store)
    return BatchDeleteResponse(deleted_count=result.deleted_count, errors=result.errors)


@router.post("/announcements/duplicate", response_model=DuplicateResponse)
def duplicate(
    body: DuplicateRequest,
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    result = announcement_lifecycle.duplicate(db, body.announcement_id, blob_store)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source announcement not found")
    return DuplicateResponse(
        new_announcement_id=result.new_announcement_id,
        title=result.title,
        attachments_copied=result.attachments_copied,
        skipped=result.skipped,
    )


@router.put("/announcements/{announcement_id}/attachments", response_model=ReconcileResponse)
async def save_attachments(
    announcement_id: str,
    order: str = Form("[]"),
    remove: str = Form("[]"),
    files: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """
    Form: order (JSON list of {"id"} / {"file"} slots, final order), remove (JSON list of
    attachment ids), files (new uploads referenced by index from `order`).
    """
    try:
        slots = _order_adapter.validate_json(order)
        removal_ids = _ids_adapter.validate_json(remove)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=json.loads(e.json()))

    desired = []
    for slot in slots:
        if slot.id is not None:
            desired.append(KeepAttachment(slot.id))
        elif slot.file is not None and 0 <= slot.file < len(files):
            upload = files[slot.file]
            desired.append(NewAttachment(
                file_name=upload.filename or "file",
                data=await upload.read(),
                mime_type=upload.content_type,
            ))
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid order slot: {slot.model_dump()}",
            )

    def _do() -> ReconcileResponse | None:
        # DB and blob I/O stay off the event loop, response rows included
        result = reconcile_attachments(db, announcement_id, desired, removal_ids, blob_store)
        if result is None:
            return None
        return ReconcileResponse(
            upserted=[attachment_to_response(a) for a in result.upserted],
            inserted=[attachment_to_response(a) for a in result.inserted],
            removed=result.removed,
            errors=[FileErrorResponse(file_name=e.file_name, error=e.error) for e in result.errors],
        )

    loop = asyncio.get_event_loop()
    response = await loop.run_in_executor(None, _do)
    if response is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return response


@router.get("/announcements/stats", response_model=AnnouncementStatsResponse)
def get_stats(db: Session = Depends(get_db)):
    stats = announcement_stats.collect_stats(db)
    return AnnouncementStatsResponse(
        total_announcements=stats.total_announcements,
        total_views=stats.total_views,
        overdue_count=stats.overdue_count,
        overdue_ids=stats.overdue_ids,
        chart_data=[DailyViews(date=day, count=count) for day, count in stats.daily_views],
    )


@router.get("/settings")
def get_settings_view(db: Session = Depends(get_db)):
    return system_config.list_system_config(db)


@router.put("/settings")
def update_settings(body: SystemSettingsUpdate, db: Session = Depends(get_db)):
    """Only keys present in the body are written; an empty string clears the override."""
    for key, value in body.model_dump(exclude_unset=True).items():
        system_config.set_system_config(db, key, value)
    db.commit()
    return system_config.list_system_config(db)

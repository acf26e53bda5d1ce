"""
Public read side: active announcements, their attachments, view logging, file download.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from bulletin.database import get_db
from bulletin.models.announcement import Announcement
from bulletin.models.attachment import Attachment
from bulletin.repositories import announcement_repository as repo
from bulletin.schemas.announcement import AnnouncementResponse, AttachmentResponse
from bulletin.services.blob_store import BlobStoreError, LocalBlobStore, get_blob_store

router = APIRouter(prefix="/api/announcements", tags=["announcements"])
attachments_router = APIRouter(prefix="/api/attachments", tags=["attachments"])


def attachment_to_response(att: Attachment) -> AttachmentResponse:
    name = att.stored_file_path.rsplit("/", 1)[-1]
    return AttachmentResponse(
        id=att.id,
        file_name=att.file_name,
        file_size=att.file_size,
        mime_type=att.mime_type,
        display_order=att.display_order,
        url=f"/api/attachments/{name}",
    )


def announcement_to_response(item: Announcement, attachments: list[Attachment]) -> AnnouncementResponse:
    return AnnouncementResponse(
        id=item.id,
        title=item.title,
        internal_id=item.internal_id,
        category=item.category,
        summary=item.summary,
        target_audience=item.target_audience,
        submission_method=item.submission_method,
        application_start_date=item.application_start_date,
        application_end_date=item.application_end_date,
        application_limitations=item.application_limitations,
        external_urls=item.external_urls,
        is_active=item.is_active,
        is_synced=bool(item.external_document_id),
        attachments=[attachment_to_response(a) for a in attachments],
        created_at=item.created_at.isoformat(),
        updated_at=item.updated_at.isoformat(),
    )


def _get_active(db: Session, announcement_id: str) -> Announcement:
    item = repo.get_announcement(db, announcement_id)
    if not item or not item.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return item


@router.get("", response_model=list[AnnouncementResponse])
def list_announcements(db: Session = Depends(get_db)):
    return [announcement_to_response(x, x.attachments) for x in repo.list_announcements(db, active_only=True)]


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
def get_announcement(announcement_id: str, db: Session = Depends(get_db)):
    item = _get_active(db, announcement_id)
    return announcement_to_response(item, repo.list_attachments(db, item.id))


@router.post("/{announcement_id}/view")
def record_view(announcement_id: str, db: Session = Depends(get_db)):
    """Log one view of an active announcement."""
    item = _get_active(db, announcement_id)
    repo.record_view(db, item.id)
    db.commit()
    return {"views": repo.count_views(db, item.id)}


@attachments_router.get("/{name}")
def download_attachment(
    name: str,
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Stream an attachment by its stored name; served under its original file name."""
    att = repo.get_attachment_by_stored_name(db, name)
    if not att:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    try:
        path = blob_store.resolve(att.stored_file_path)
    except BlobStoreError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(
        path,
        filename=att.file_name,
        media_type=att.mime_type or "application/octet-stream",
    )

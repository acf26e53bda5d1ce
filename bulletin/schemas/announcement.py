from datetime import date
from typing import Literal
from pydantic import BaseModel, Field


class ExternalUrl(BaseModel):
    name: str | None = None
    url: str


class AttachmentResponse(BaseModel):
    id: str
    file_name: str
    file_size: int
    mime_type: str | None
    display_order: int
    url: str  # public download path

    class Config:
        from_attributes = True


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    internal_id: str | None
    category: str | None
    summary: str | None
    target_audience: str | None
    submission_method: str | None
    application_start_date: date | None
    application_end_date: date | None
    application_limitations: str | None
    external_urls: list[ExternalUrl | str] | str | None
    is_active: bool
    is_synced: bool = False  # has a mirrored index document
    attachments: list[AttachmentResponse] = []
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class IndexSyncRequest(BaseModel):
    id: str
    action: Literal["sync", "delete"] = "sync"
    is_doc_id: bool = False  # delete only: `id` is a document id, not an announcement id


class IndexSyncResponse(BaseModel):
    success: bool
    document_id: str | None = None
    message: str | None = None


class RebuildResponse(BaseModel):
    success: bool
    count: int
    failed: list[str]


class BatchDeleteRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


class BatchDeleteResponse(BaseModel):
    deleted_count: int
    errors: list[str]


class DuplicateRequest(BaseModel):
    announcement_id: str


class DuplicateResponse(BaseModel):
    new_announcement_id: str
    title: str
    attachments_copied: int
    skipped: list[str]


class AttachmentOrderItem(BaseModel):
    """
    One slot of the desired attachment order (multipart field `order`, JSON list).
    Existing row: {"id": "<attachment id>"}. New file: {"file": <index into the uploaded files>}.
    """
    id: str | None = None
    file: int | None = None


class FileErrorResponse(BaseModel):
    file_name: str
    error: str


class ReconcileResponse(BaseModel):
    upserted: list[AttachmentResponse]
    inserted: list[AttachmentResponse]
    removed: list[str]
    errors: list[FileErrorResponse]


class SystemSettingsUpdate(BaseModel):
    INDEX_API_KEY: str | None = None
    INDEX_API_URL: str | None = None
    INDEX_DATASET_ID: str | None = None


class DailyViews(BaseModel):
    date: str  # YYYY-MM-DD
    count: int


class AnnouncementStatsResponse(BaseModel):
    total_announcements: int
    total_views: int
    overdue_count: int
    overdue_ids: list[str]
    chart_data: list[DailyViews]

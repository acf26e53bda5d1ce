"""
Flat text projection of an announcement for the knowledge index.

Field order and labels are fixed. Every optional field keeps its line; an empty one
renders PLACEHOLDER so a consumer reading the text by position never sees a shift.
Pure: no I/O, same output for create and update.
"""
import html
import re
from datetime import date
from typing import Any, Iterable

PLACEHOLDER = "N/A"

HEADER = "[Announcement]"
ATTACHMENTS_HEADER = "[Attachments]"

FIELD_LABELS = (
    "Title",
    "Internal ID",
    "Category",
    "Summary",
    "Application Start Date",
    "Application End Date",
    "Target Audience",
    "Concurrent Awards",
    "Submission Method",
    "Links",
)

LIMITATION_LABELS = {"Y": "Allowed", "N": "Not allowed"}

_TAG_RE = re.compile(r"<[^>]*>?")
_WS_RE = re.compile(r"\s+")


def clean_rich_text(value: str | None) -> str:
    """Strip HTML tags, decode entities and collapse whitespace."""
    if not value:
        return ""
    text = _TAG_RE.sub(" ", value)
    text = html.unescape(text).replace("\xa0", " ")
    return _WS_RE.sub(" ", text).strip()


def _or_placeholder(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    if isinstance(value, date):
        return value.isoformat()
    text = _WS_RE.sub(" ", str(value)).strip()
    return text or PLACEHOLDER


def extract_urls(external_urls: Any) -> list[str]:
    """URLs from the stored list. Accepts [{"url": ...}], plain strings, or a bare URL string."""
    if not external_urls:
        return []
    if isinstance(external_urls, str):
        return [external_urls] if external_urls.startswith("http") else []
    urls = []
    for item in external_urls:
        if isinstance(item, dict):
            url = (item.get("url") or "").strip()
        elif isinstance(item, str):
            url = item.strip()
        else:
            continue
        if url:
            urls.append(url)
    return urls


def _attachment_lines(attachments: Iterable[Any], app_url: str) -> list[str]:
    base = app_url.rstrip("/")
    lines = []
    for att in attachments:
        name = att.stored_file_path.rsplit("/", 1)[-1]
        lines.append(f"- {att.file_name}: {base}/api/attachments/{name}")
    return lines


def format_announcement(announcement: Any, attachments: Iterable[Any] | None = None, app_url: str = "") -> str:
    """
    Build the index document text. `attachments` must already be in display order;
    when omitted, announcement.attachments is used.
    """
    if attachments is None:
        attachments = getattr(announcement, "attachments", None) or []
    values = (
        announcement.title,
        announcement.internal_id,
        announcement.category,
        clean_rich_text(announcement.summary),
        announcement.application_start_date,
        announcement.application_end_date,
        clean_rich_text(announcement.target_audience),
        LIMITATION_LABELS.get(announcement.application_limitations or ""),
        clean_rich_text(announcement.submission_method),
        ", ".join(extract_urls(announcement.external_urls)),
    )
    lines = [HEADER]
    lines.extend(f"{label}: {_or_placeholder(value)}" for label, value in zip(FIELD_LABELS, values))
    lines.append("")
    lines.append(ATTACHMENTS_HEADER)
    lines.extend(_attachment_lines(attachments, app_url) or [PLACEHOLDER])
    return "\n".join(lines)

"""
Attachment blob storage on the local filesystem.

Stored paths are relative to the storage root ("attachments/<name>") and are owned by exactly one
attachment row. Every path coming back from the database is re-resolved under the root, so a
tampered path cannot escape it.
"""
import logging
import mimetypes
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from bulletin.config import get_settings

logger = logging.getLogger(__name__)

ATTACHMENTS_PREFIX = "attachments"
CHUNK_SIZE = 1024 * 1024  # 1 MB
ALLOWED_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
    ".txt", ".csv", ".zip", ".png", ".jpg", ".jpeg", ".gif", ".webp",
}


class BlobStoreError(OSError):
    """A blob could not be written, copied or removed."""


@dataclass(frozen=True)
class StoredBlob:
    path: str
    size: int
    mime_type: str
    original_name: str


def _safe_extension(name: str) -> str:
    ext = Path(name).suffix.lower() if name else ""
    return ext if ext in ALLOWED_EXTENSIONS else ".bin"


class LocalBlobStore:
    def __init__(self, root: Path):
        self.root = Path(root)

    def _ensure_dir(self) -> Path:
        folder = self.root / ATTACHMENTS_PREFIX
        folder.mkdir(parents=True, exist_ok=True)
        return folder

    def resolve(self, path: str) -> Path:
        """Absolute file path for a stored path. Raises BlobStoreError if it escapes the root."""
        base = self.root.resolve()
        full = (base / path.lstrip("/")).resolve()
        try:
            full.relative_to(base)
        except ValueError:
            raise BlobStoreError(f"Path outside storage root: {path}") from None
        return full

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except BlobStoreError:
            return False

    def put(self, data: bytes, original_name: str, mime_type: str | None = None) -> StoredBlob:
        """Write a new blob under a fresh name. The original name is kept only as metadata."""
        folder = self._ensure_dir()
        name = f"{uuid.uuid4().hex}{_safe_extension(original_name)}"
        try:
            with (folder / name).open("xb") as f:
                f.write(data)
        except OSError as e:
            raise BlobStoreError(f"Could not store {original_name}: {e}") from e
        guessed = mimetypes.guess_type(original_name or "")[0]
        return StoredBlob(
            path=f"{ATTACHMENTS_PREFIX}/{name}",
            size=len(data),
            mime_type=mime_type or guessed or "application/octet-stream",
            original_name=original_name,
        )

    def copy(self, path: str) -> str:
        """Copy an existing blob to a new collision-resistant path; never overwrites."""
        source = self.resolve(path)
        if not source.is_file():
            raise BlobStoreError(f"Source blob missing: {path}")
        folder = self._ensure_dir()
        name = f"{int(time.time() * 1000)}-copy-{uuid.uuid4().hex[:8]}{source.suffix.lower()}"
        target = folder / name
        try:
            with source.open("rb") as src, target.open("xb") as dst:
                shutil.copyfileobj(src, dst, CHUNK_SIZE)
        except OSError as e:
            target.unlink(missing_ok=True)
            raise BlobStoreError(f"Could not copy {path}: {e}") from e
        return f"{ATTACHMENTS_PREFIX}/{name}"

    def remove(self, paths: list[str]) -> dict[str, str | None]:
        """
        Remove blobs. Returns {path: None on success, or error message}.
        A blob that is already gone counts as removed.
        """
        outcome: dict[str, str | None] = {}
        for path in paths:
            try:
                self.resolve(path).unlink(missing_ok=True)
                outcome[path] = None
            except OSError as e:
                logger.warning("Blob remove failed for %s: %s", path, e)
                outcome[path] = str(e)
        return outcome


def blob_storage_dir() -> Path:
    settings = get_settings()
    if settings.blob_storage_dir:
        return Path(settings.blob_storage_dir)
    return Path(__file__).resolve().parent.parent.parent / "storage"


def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(blob_storage_dir())

"""
Operator settings stored in system_settings, falling back to environment defaults.
Priority per key: database row (non-empty) -> Settings (env / .env).
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bulletin.config import Settings, get_settings
from bulletin.models.system_setting import SystemSetting

logger = logging.getLogger(__name__)

INDEX_API_KEY = "INDEX_API_KEY"
INDEX_API_URL = "INDEX_API_URL"
INDEX_DATASET_ID = "INDEX_DATASET_ID"

# Setting key -> Settings attribute used as fallback
ENV_FALLBACKS = {
    INDEX_API_KEY: "index_api_key",
    INDEX_API_URL: "index_api_url",
    INDEX_DATASET_ID: "index_dataset_id",
}
SECRET_KEYS = {INDEX_API_KEY}


@dataclass(frozen=True)
class IndexConfig:
    api_key: str
    base_url: str
    dataset_id: str


def get_system_config(db: Session, key: str, settings: Settings | None = None) -> str | None:
    """Value for key: DB row first, then environment default. Lookup errors fall through to env."""
    try:
        row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
        if row is not None and row.value:
            return row.value
    except SQLAlchemyError as e:
        logger.warning("System setting lookup failed for %s, using environment: %s", key, e)
    settings = settings or get_settings()
    attr = ENV_FALLBACKS.get(key)
    if attr is None:
        return None
    return getattr(settings, attr, None) or None


def resolve_index_config(db: Session, settings: Settings | None = None) -> IndexConfig | None:
    """One resolved (credential, base URL, dataset) tuple, or None if any part is missing."""
    api_key = get_system_config(db, INDEX_API_KEY, settings)
    base_url = get_system_config(db, INDEX_API_URL, settings)
    dataset_id = get_system_config(db, INDEX_DATASET_ID, settings)
    if not api_key or not base_url or not dataset_id:
        logger.error(
            "Index configuration missing (api_key=%s, base_url=%s, dataset_id=%s)",
            bool(api_key), base_url, dataset_id,
        )
        return None
    return IndexConfig(api_key=api_key, base_url=base_url.rstrip("/"), dataset_id=dataset_id)


def set_system_config(db: Session, key: str, value: str | None) -> SystemSetting:
    """Upsert one operator setting. Caller commits."""
    row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if row is None:
        row = SystemSetting(key=key)
        db.add(row)
    row.value = value or None
    return row


def list_system_config(db: Session) -> dict[str, str | None]:
    """Known keys with their stored value; secrets are masked."""
    rows = {r.key: r.value for r in db.query(SystemSetting).filter(SystemSetting.key.in_(list(ENV_FALLBACKS)))}
    out = {}
    for key in ENV_FALLBACKS:
        value = rows.get(key)
        if value and key in SECRET_KEYS:
            value = "***" + value[-4:] if len(value) > 4 else "***"
        out[key] = value
    return out

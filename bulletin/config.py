from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./bulletin.db"

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Public base URL used for attachment links in index documents
    app_url: str = "http://localhost:8001"

    # Admin endpoints: static bearer token (empty = admin API disabled)
    admin_api_token: str = ""

    # Knowledge index (Dify-style dataset). Operator values in system_settings win over these.
    index_api_url: str = ""
    index_api_key: str = ""
    index_dataset_id: str = ""
    index_timeout_seconds: float = 15.0
    index_indexing_technique: str = "high_quality"  # or "economy"
    index_delete_workers: int = 4

    # Attachment blobs: absolute folder (empty = backend/storage)
    blob_storage_dir: str = ""

    # Duplicate: title becomes "<title>_MMDD_<suffix>"
    duplicate_title_suffix: str = "copy"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""
HTTP client for the external knowledge index (Dify-style dataset API).

Every call is one round trip with a bounded timeout and returns an IndexResult instead of
raising: callers branch on the outcome. A timeout is TRANSIENT, never NOT_FOUND.
Document ids are opaque strings and are passed through untouched.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from sqlalchemy.orm import Session

from bulletin.config import get_settings
from bulletin.services.system_config import IndexConfig, resolve_index_config

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100
PROCESS_RULE = {"mode": "automatic"}


class IndexOutcome(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"  # timeout, connection error, 5xx, malformed body; caller may retry
    REJECTED = "rejected"  # other 4xx; retrying the same call will not help
    CONFIGURATION_MISSING = "configuration_missing"


@dataclass
class IndexResult:
    outcome: IndexOutcome
    document_id: str | None = None
    document_ids: list[str] = field(default_factory=list)
    status_code: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is IndexOutcome.OK


def config_missing() -> IndexResult:
    return IndexResult(
        IndexOutcome.CONFIGURATION_MISSING,
        error="Index configuration missing (INDEX_API_KEY, INDEX_API_URL, INDEX_DATASET_ID)",
    )


class IndexClient:
    """
    Wraps create / update / delete / list on one dataset.
    `config=None` means configuration could not be resolved: every call returns
    CONFIGURATION_MISSING without touching the network.
    """

    def __init__(
        self,
        config: IndexConfig | None,
        timeout: float | None = None,
        indexing_technique: str | None = None,
        http: Any = None,
    ):
        settings = get_settings()
        self._config = config
        self._timeout = timeout if timeout is not None else settings.index_timeout_seconds
        self._indexing_technique = indexing_technique or settings.index_indexing_technique
        self._http = http or requests

    @property
    def configured(self) -> bool:
        return self._config is not None

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}/datasets/{self._config.dataset_id}/{path}"

    def _send(self, method: str, path: str, **kwargs) -> tuple[requests.Response | None, IndexResult | None]:
        """Returns (response, None) when a response arrived, else (None, TRANSIENT result)."""
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._http.request(method, self._url(path), headers=headers, timeout=self._timeout, **kwargs)
        except requests.Timeout:
            logger.warning("Index %s %s timed out after %ss", method, path, self._timeout)
            return None, IndexResult(IndexOutcome.TRANSIENT, error=f"Timed out after {self._timeout}s")
        except requests.RequestException as e:
            logger.warning("Index %s %s failed: %s", method, path, e)
            return None, IndexResult(IndexOutcome.TRANSIENT, error=str(e))
        return response, None

    @staticmethod
    def _failure(response: requests.Response, action: str) -> IndexResult:
        code = response.status_code
        if code == 404:
            outcome = IndexOutcome.NOT_FOUND
        elif code >= 500 or code == 429:
            outcome = IndexOutcome.TRANSIENT
        else:
            outcome = IndexOutcome.REJECTED
        body = (response.text or "")[:500]
        logger.error("Index %s failed: %s %s", action, code, body)
        return IndexResult(outcome, status_code=code, error=f"{action} failed ({code}): {body}".strip())

    @staticmethod
    def _document_id(response: requests.Response) -> str | None:
        try:
            data = response.json()
        except ValueError:
            return None
        document = data.get("document") if isinstance(data, dict) else None
        if not isinstance(document, dict) or not document.get("id"):
            return None
        return str(document["id"])

    def create(self, title: str, text: str) -> IndexResult:
        if not self.configured:
            return config_missing()
        body = {
            "name": title,
            "text": text,
            "indexing_technique": self._indexing_technique,
            "process_rule": PROCESS_RULE,
        }
        response, failed = self._send("POST", "document/create_by_text", json=body)
        if failed:
            return failed
        if not response.ok:
            result = self._failure(response, "create")
            if result.outcome is IndexOutcome.NOT_FOUND:
                # 404 on create means the dataset itself is gone, not a document
                result.outcome = IndexOutcome.REJECTED
            return result
        document_id = self._document_id(response)
        if document_id is None:
            return IndexResult(IndexOutcome.TRANSIENT, status_code=response.status_code, error="create: malformed response")
        logger.info("Index document created: %s", document_id)
        return IndexResult(IndexOutcome.OK, document_id=document_id, status_code=response.status_code)

    def update(self, document_id: str, title: str, text: str) -> IndexResult:
        """NOT_FOUND when the index no longer has document_id (drift)."""
        if not self.configured:
            return config_missing()
        body = {"name": title, "text": text, "process_rule": PROCESS_RULE}
        response, failed = self._send("POST", f"documents/{document_id}/update_by_text", json=body)
        if failed:
            return failed
        if not response.ok:
            return self._failure(response, "update")
        new_id = self._document_id(response)
        if new_id is None:
            return IndexResult(IndexOutcome.TRANSIENT, status_code=response.status_code, error="update: malformed response")
        return IndexResult(IndexOutcome.OK, document_id=new_id, status_code=response.status_code)

    def delete(self, document_id: str) -> IndexResult:
        """Idempotent: a 404 already satisfies "document absent" and is reported as OK."""
        if not self.configured:
            return config_missing()
        response, failed = self._send("DELETE", f"documents/{document_id}")
        if failed:
            return failed
        if response.status_code == 404:
            logger.info("Index document %s already absent", document_id)
            return IndexResult(IndexOutcome.OK, document_id=document_id, status_code=404)
        if not response.ok:
            return self._failure(response, "delete")
        return IndexResult(IndexOutcome.OK, document_id=document_id, status_code=response.status_code)

    def list_document_ids(self, page_size: int = LIST_PAGE_SIZE) -> IndexResult:
        """All document ids in the dataset, following has_more pagination."""
        if not self.configured:
            return config_missing()
        ids: list[str] = []
        page = 1
        while True:
            response, failed = self._send("GET", "documents", params={"page": page, "limit": page_size})
            if failed:
                return failed
            if not response.ok:
                result = self._failure(response, "list")
                if result.outcome is IndexOutcome.NOT_FOUND:
                    result.outcome = IndexOutcome.REJECTED
                return result
            try:
                data = response.json()
            except ValueError:
                return IndexResult(IndexOutcome.TRANSIENT, status_code=response.status_code, error="list: malformed response")
            items = (data.get("data") or []) if isinstance(data, dict) else None
            if not isinstance(items, list):
                return IndexResult(IndexOutcome.TRANSIENT, status_code=response.status_code, error="list: malformed response")
            ids.extend(str(doc["id"]) for doc in items if isinstance(doc, dict) and doc.get("id"))
            if not data.get("has_more") or not items:
                break
            page += 1
        return IndexResult(IndexOutcome.OK, document_ids=ids)


def build_index_client(db: Session) -> IndexClient:
    """Client bound to the configuration resolved for this request."""
    return IndexClient(resolve_index_config(db))

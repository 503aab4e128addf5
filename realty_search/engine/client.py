"""
Typesense Client
Thin HTTP client for collection management, bulk upsert and search.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests

from ..errors import SchemaPatchError, UpstreamError
from .schema import PROPERTIES_QUERY_BY

logger = logging.getLogger(__name__)

SERVICE = "search_engine"


@dataclass
class SearchParams:
    """
    Search request parameters.

    Use page/per_page for page-aligned reads, offset/limit for arbitrary
    slices. per_page=0 returns only the match count.
    """

    q: str = "*"
    query_by: str = PROPERTIES_QUERY_BY
    filter_by: Optional[str] = None
    sort_by: Optional[str] = None
    page: Optional[int] = None
    per_page: Optional[int] = None
    offset: Optional[int] = None
    limit: Optional[int] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": self.q, "query_by": self.query_by}
        for key in ("filter_by", "sort_by", "page", "per_page", "offset", "limit"):
            value = getattr(self, key)
            if value is not None:
                params[key] = value
        return params


@dataclass
class SearchResponse:
    found: int
    hits: List[Dict[str, Any]] = field(default_factory=list)
    page: Optional[int] = None
    search_time_ms: Optional[int] = None

    @property
    def documents(self) -> List[Dict[str, Any]]:
        return [hit.get("document", {}) for hit in self.hits]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SearchResponse":
        return cls(
            found=int(data.get("found") or 0),
            hits=list(data.get("hits") or []),
            page=data.get("page"),
            search_time_ms=data.get("search_time_ms"),
        )


@dataclass
class ImportResult:
    """Per-document outcome of a bulk import."""

    success: bool
    error: Optional[str] = None
    document: Optional[str] = None

    @classmethod
    def from_line(cls, line: str) -> "ImportResult":
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return cls(success=False, error=f"Unreadable import result: {line[:200]}")
        if not isinstance(data, dict):
            return cls(success=False, error=f"Unexpected import result: {line[:200]}")
        if data.get("success") is False:
            error = data.get("error") or data.get("message") or json.dumps(data)
            return cls(success=False, error=str(error), document=data.get("document"))
        return cls(success=True)


class TypesenseClient:
    """
    Typesense REST client over a requests.Session.

    Transport failures and unexpected statuses raise UpstreamError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"X-TYPESENSE-API-KEY": api_key})

    @classmethod
    def from_settings(cls, settings) -> "TypesenseClient":
        return cls(
            base_url=settings.typesense_base_url,
            api_key=settings.typesense_api_key,
            timeout=settings.typesense_timeout_seconds,
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Typesense {method} {path} failed: {e}")
            raise UpstreamError(f"Search engine unreachable: {e}", service=SERVICE) from e

    @staticmethod
    def _error_text(response: requests.Response) -> str:
        return (response.text or "")[:500]

    def _collection_path(self, name: str) -> str:
        return f"/collections/{quote(name, safe='')}"

    def health(self) -> bool:
        try:
            response = self._request("GET", "/health")
        except UpstreamError:
            return False
        return response.ok

    def retrieve_collection(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Describe a collection.

        Returns:
            Collection description, or None if it does not exist
        """
        response = self._request("GET", self._collection_path(name))
        if response.status_code == 404:
            return None
        if not response.ok:
            raise UpstreamError(
                f"Collection check failed: {name} ({response.status_code})",
                service=SERVICE,
                status_code=response.status_code,
            )
        return response.json()

    def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", "/collections", json=schema)
        if not response.ok:
            raise SchemaPatchError(
                schema["name"],
                f"Create collection failed: {schema['name']} ({response.status_code}) "
                f"{self._error_text(response)}",
                status_code=response.status_code,
            )
        return response.json()

    def patch_collection(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("PATCH", self._collection_path(name), json=body)
        if not response.ok:
            raise SchemaPatchError(
                name,
                f"Patch collection failed: {name} ({response.status_code}) "
                f"{self._error_text(response)}",
                status_code=response.status_code,
            )
        return response.json()

    def import_documents(
        self, collection: str, documents: Iterable[Dict[str, Any]], action: str = "upsert"
    ) -> List[ImportResult]:
        """
        Bulk import documents as JSONL.

        The engine answers 200 even when individual documents fail; the
        per-document outcomes are returned for the caller to inspect.

        Args:
            collection: Collection name
            documents: Flat documents keyed by "id"
            action: Import action (upsert keeps re-imports idempotent)

        Returns:
            One ImportResult per document, in input order
        """
        body = "\n".join(json.dumps(doc, ensure_ascii=False) for doc in documents)
        if not body:
            return []

        response = self._request(
            "POST",
            f"{self._collection_path(collection)}/documents/import",
            params={"action": action},
            data=body.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        if not response.ok:
            raise UpstreamError(
                f"Import request failed ({response.status_code}) {self._error_text(response)}",
                service=SERVICE,
                status_code=response.status_code,
            )

        return [ImportResult.from_line(line) for line in response.text.splitlines() if line.strip()]

    def search(self, collection: str, params: SearchParams) -> SearchResponse:
        response = self._request(
            "GET",
            f"{self._collection_path(collection)}/documents/search",
            params=params.to_params(),
        )
        if not response.ok:
            raise UpstreamError(
                f"Search failed ({response.status_code}) {self._error_text(response)}",
                service=SERVICE,
                status_code=response.status_code,
            )
        return SearchResponse.from_json(response.json())

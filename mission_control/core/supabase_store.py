"""
PostgREST (Supabase) row store over HTTP.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from .errors import RowStoreError
from .rest import Filters, Row, RowStore
from ..util.logging import logger


class SupabaseRestStore(RowStore):
    """Row store backed by a Supabase project's PostgREST endpoint, using the service-role key."""

    def __init__(self, url: str, service_role_key: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        if not url or not service_role_key:
            raise ValueError("SupabaseRestStore requires both url and service_role_key")

        self.base_url = url.rstrip("/")
        self.timeout = timeout
        self.settings = (url, service_role_key, timeout)
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        })

    def close(self):
        """Close the underlying HTTP session."""
        self.session.close()

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    @staticmethod
    def _build_params(filters: Optional[Filters]) -> List[Tuple[str, str]]:
        """Flatten filters into query params; list values repeat the column (e.g. a half-open range)."""
        params = []
        for key, value in (filters or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                for item in value:
                    params.append((key, str(item)))
                continue
            params.append((key, str(value)))
        return params

    def _request(self, method: str, table: str, filters: Filters = None, body: Any = None,
                 prefer: str = "return=representation") -> requests.Response:
        start_time = time.monotonic()
        try:
            response = self.session.request(
                method,
                self._table_url(table),
                params=self._build_params(filters),
                json=body if body is not None and method not in ("GET", "HEAD") else None,
                headers={"Prefer": prefer},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RowStoreError(
                f"PostgREST {method} {table} failed (network): {e}",
                method=method, table=table,
            ) from e

        logger.log_store_request(method, table, response.status_code,
                                 (time.monotonic() - start_time) * 1000)

        if not response.ok:
            raise RowStoreError(
                f"PostgREST {method} {table} failed ({response.status_code}): {response.text}",
                method=method, table=table, status_code=response.status_code,
            )

        return response

    def select_rows(self, table: str, filters: Filters = None) -> List[Row]:
        return self._request("GET", table, filters).json()

    def insert_rows(self, table: str, rows: List[Row], on_conflict: str = None,
                    upsert: bool = False) -> List[Row]:
        filters: Dict[str, Any] = {}
        if on_conflict:
            filters["on_conflict"] = on_conflict

        prefer_parts = ["return=representation"]
        if upsert:
            prefer_parts.append("resolution=merge-duplicates")

        return self._request("POST", table, filters, body=rows, prefer=",".join(prefer_parts)).json()

    def patch_rows(self, table: str, values: Row, filters: Filters) -> List[Row]:
        return self._request("PATCH", table, filters, body=values).json()

    def count_rows(self, table: str, filters: Filters = None) -> int:
        params = dict(filters or {})
        params["select"] = "id"
        response = self._request("HEAD", table, params, prefer="count=exact")

        content_range = response.headers.get("content-range")
        if not content_range or "/" not in content_range:
            return 0

        try:
            return int(content_range.split("/", 1)[1])
        except ValueError:
            return 0

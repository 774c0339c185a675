from __future__ import annotations
import logging
from typing import Optional

import httpx

from config.settings import settings
from connectors.base import DirectoryEntry, ListingPage
from connectors.registry import register

logger = logging.getLogger(__name__)


def quote_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def children_query(parent_id: str) -> str:
    return f"'{quote_query_value(parent_id)}' in parents and trashed=false"


@register("google_drive")
class GoogleDriveConnector:
    name = "google_drive"

    @property
    def api_base(self) -> str:
        return settings.DRIVE_API_BASE

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True)

    @staticmethod
    def _headers(access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    def build_authorize_url(self, *, client_id: str, redirect_uri: str, state: str) -> str:
        from connectors.google_drive.auth import build_authorize_url

        return build_authorize_url(client_id=client_id, redirect_uri=redirect_uri, state=state)

    async def exchange_code_for_tokens_async(
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> dict:
        from connectors.google_drive.auth import exchange_code_for_tokens_async as _exchange
        return await _exchange(
            client_id=client_id,
            client_secret=client_secret,
            code=code,
            redirect_uri=redirect_uri,
        )

    def refresh_tokens(self, *, client_id: str, client_secret: str, refresh_token: str) -> dict:
        import anyio
        from connectors.google_drive.auth import refresh_tokens_async

        async def _run():
            return await refresh_tokens_async(
                client_id=client_id,
                client_secret=client_secret,
                refresh_token=refresh_token,
            )

        return anyio.run(_run)

    def list_children(
        self,
        *,
        access_token: str,
        parent_id: str,
        fields: str,
        page_size: int,
        page_token: Optional[str] = None,
        include_all_drives: bool = True,
    ) -> ListingPage:
        """Fetch one page of the non-trashed children of ``parent_id``.

        ``fields`` is the per-file field list; ``nextPageToken`` is requested at the
        top level so the caller can keep paging.
        """
        flag = "true" if include_all_drives else "false"
        params = {
            "q": children_query(parent_id),
            "fields": f"files({fields}),nextPageToken",
            "pageSize": page_size,
            "supportsAllDrives": flag,
            "includeItemsFromAllDrives": flag,
        }
        if page_token:
            params["pageToken"] = page_token
        with self._client() as client:
            resp = client.get(f"{self.api_base}/files", headers=self._headers(access_token), params=params)
            resp.raise_for_status()
            data = resp.json()
        entries = [DirectoryEntry.from_api(f) for f in data.get("files", [])]
        return ListingPage(entries=entries, next_page_token=data.get("nextPageToken") or None)

    def search(
        self,
        *,
        access_token: str,
        query: str,
        fields: str,
        order_by: str,
        page_size: int,
        page_token: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]:
        params = {
            "q": query,
            "fields": f"files({fields}),nextPageToken",
            "pageSize": page_size,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
            "orderBy": order_by,
        }
        if page_token:
            params["pageToken"] = page_token
        with self._client() as client:
            resp = client.get(f"{self.api_base}/files", headers=self._headers(access_token), params=params)
            resp.raise_for_status()
            data = resp.json()
        return data.get("files", []), data.get("nextPageToken") or None

    def get_entry(self, *, access_token: str, file_id: str, fields: str) -> dict:
        params = {"fields": fields, "supportsAllDrives": "true"}
        with self._client() as client:
            resp = client.get(f"{self.api_base}/files/{file_id}", headers=self._headers(access_token), params=params)
            resp.raise_for_status()
            return resp.json()

    def download(self, *, access_token: str, file_id: str) -> bytes:
        params = {"alt": "media", "supportsAllDrives": "true"}
        with self._client() as client:
            resp = client.get(f"{self.api_base}/files/{file_id}", headers=self._headers(access_token), params=params)
            resp.raise_for_status()
            return resp.content

    def export(self, *, access_token: str, file_id: str, mime_type: str) -> bytes:
        params = {"mimeType": mime_type, "supportsAllDrives": "true"}
        with self._client() as client:
            resp = client.get(
                f"{self.api_base}/files/{file_id}/export",
                headers=self._headers(access_token),
                params=params,
            )
            resp.raise_for_status()
            return resp.content

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from connectors.base import FOLDER_MIME_TYPE, DirectoryService
from connectors.google_drive.connector import children_query, quote_query_value
from core.walker import ROOT_ID

logger = logging.getLogger(__name__)

MAX_DISPLAY_RESULTS = 20
SEARCH_PAGE_SIZE = 1000
MY_DRIVE_NAME = "My Drive"
MY_DRIVE_URL = "https://drive.google.com"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class SearchResult:
    name: str
    value: str
    url: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "url": self.url}


MY_DRIVE = SearchResult(name=MY_DRIVE_NAME, value=ROOT_ID, url=MY_DRIVE_URL)


def order_by_for(sort_order: str) -> str:
    if "modified" in sort_order:
        return "modifiedTime desc"
    if "created" in sort_order:
        return "createdTime desc"
    return "name"


def _timestamp(value: Optional[str]) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def sort_results(files: list[dict], sort_order: str) -> list[dict]:
    if sort_order == "nameDesc":
        return sorted(files, key=lambda f: (f.get("name") or "").lower(), reverse=True)
    if sort_order in ("modifiedDesc", "modifiedAsc"):
        return sorted(files, key=lambda f: _timestamp(f.get("modifiedTime")), reverse=sort_order == "modifiedDesc")
    if sort_order in ("createdDesc", "createdAsc"):
        return sorted(files, key=lambda f: _timestamp(f.get("createdTime")), reverse=sort_order == "createdDesc")
    return sorted(files, key=lambda f: (f.get("name") or "").lower())


def _search_all(service: DirectoryService, access_token: str, query: str, fields: str, order_by: str) -> list[dict]:
    files: list[dict] = []
    page_token = None
    while True:
        batch, page_token = service.search(
            access_token=access_token,
            query=query,
            fields=fields,
            order_by=order_by,
            page_size=SEARCH_PAGE_SIZE,
            page_token=page_token,
        )
        files.extend(batch)
        if not page_token:
            return files


def search_folders(
    service: DirectoryService,
    *,
    access_token: str,
    filter: Optional[str] = None,
    sort_order: str = "nameAsc",
) -> list[SearchResult]:
    """Folder choices for the start-folder picker.

    "My Drive" leads the list whenever it matches the filter. On any API error
    the picker still offers "My Drive" alone.
    """
    results: list[SearchResult] = []
    if not filter or filter.lower() in MY_DRIVE_NAME.lower():
        results.append(MY_DRIVE)

    query = f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
    if filter:
        query += f" and name contains '{quote_query_value(filter)}'"

    try:
        folders = _search_all(
            service,
            access_token,
            query,
            "id,name,modifiedTime,createdTime,webViewLink",
            order_by_for(sort_order),
        )
    except httpx.HTTPError as e:
        logger.warning(f"Folder search failed, offering {MY_DRIVE_NAME} only: {e}")
        return [MY_DRIVE]

    limit = MAX_DISPLAY_RESULTS - len(results)
    usable = [f for f in folders if f.get("id")]
    for folder in sort_results(usable, sort_order)[:limit]:
        results.append(SearchResult(name=folder.get("name", ""), value=folder["id"], url=folder.get("webViewLink")))
    return results


def search_files(
    service: DirectoryService,
    *,
    access_token: str,
    folder_id: str = ROOT_ID,
    filter: Optional[str] = None,
) -> list[SearchResult]:
    """File choices inside ``folder_id`` for the download picker, sorted by name."""
    query = f"{children_query(folder_id or ROOT_ID)} and mimeType!='{FOLDER_MIME_TYPE}'"
    if filter:
        query += f" and name contains '{quote_query_value(filter)}'"

    try:
        files = _search_all(service, access_token, query, "id,name,mimeType,webViewLink", "name")
    except httpx.HTTPError as e:
        logger.warning(f"File search in {folder_id} failed: {e}")
        return []

    usable = [f for f in files if f.get("id")]
    return [
        SearchResult(name=f.get("name", ""), value=f["id"], url=f.get("webViewLink"))
        for f in sort_results(usable, "nameAsc")[:MAX_DISPLAY_RESULTS]
    ]

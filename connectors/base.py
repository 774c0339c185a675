from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
WORKSPACE_MIME_PREFIX = "application/vnd.google-apps."

# Keys lifted out of the raw API payload into DirectoryEntry attributes
_KNOWN_KEYS = {"id", "name", "mimeType", "parents", "properties", "appProperties", "permissions"}


@dataclass
class DirectoryEntry:
    """Normalized file-or-folder record returned by a directory listing.

    Fields not modelled explicitly (sizes, timestamps, links, ...) are kept in
    ``extra`` under their API names so field selection passes through untouched.
    """

    id: str
    name: str
    mime_type: str
    parents: list[str] = field(default_factory=list)
    properties: Optional[dict[str, str]] = None
    app_properties: Optional[dict[str, str]] = None
    permissions: Optional[list[dict]] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None

    def metadata(self, namespace: str) -> Optional[dict[str, str]]:
        if namespace == "appProperties":
            return self.app_properties
        return self.properties

    @classmethod
    def from_api(cls, data: dict) -> "DirectoryEntry":
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            mime_type=data.get("mimeType") or "",
            parents=list(data.get("parents") or []),
            properties=data.get("properties"),
            app_properties=data.get("appProperties"),
            permissions=data.get("permissions"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def to_api(self) -> dict:
        data: dict[str, Any] = dict(self.extra)
        data.update({"id": self.id, "name": self.name, "mimeType": self.mime_type, "parents": list(self.parents)})
        if self.properties is not None:
            data["properties"] = self.properties
        if self.app_properties is not None:
            data["appProperties"] = self.app_properties
        if self.permissions is not None:
            data["permissions"] = self.permissions
        return data


@dataclass
class ListingPage:
    entries: list[DirectoryEntry]
    next_page_token: Optional[str] = None


class DirectoryService(Protocol):
    name: str

    # OAuth helpers
    def build_authorize_url(self, *, client_id: str, redirect_uri: str, state: str) -> str: ...
    async def exchange_code_for_tokens_async(
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> dict: ...

    def refresh_tokens(self, *, client_id: str, client_secret: str, refresh_token: str) -> dict: ...

    # Data plane
    def list_children(
        self,
        *,
        access_token: str,
        parent_id: str,
        fields: str,
        page_size: int,
        page_token: Optional[str] = None,
        include_all_drives: bool = True,
    ) -> ListingPage: ...

    def search(
        self,
        *,
        access_token: str,
        query: str,
        fields: str,
        order_by: str,
        page_size: int,
        page_token: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]: ...

    def get_entry(self, *, access_token: str, file_id: str, fields: str) -> dict: ...
    def download(self, *, access_token: str, file_id: str) -> bytes: ...
    def export(self, *, access_token: str, file_id: str, mime_type: str) -> bytes: ...

from __future__ import annotations
import logging
from typing import Optional

from connectors.base import WORKSPACE_MIME_PREFIX, DirectoryService
from core.items import BinaryData, NodeItem
from core.parameters import WorkspaceConversion

logger = logging.getLogger(__name__)

PDF = "application/pdf"

# Export targets offered for each native Google Workspace type
EXPORT_FORMATS: dict[str, dict[str, str]] = {
    "document": {
        "html": "text/html",
        "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "odt": "application/vnd.oasis.opendocument.text",
        "pdf": PDF,
        "rtf": "application/rtf",
        "txt": "text/plain",
    },
    "spreadsheet": {
        "csv": "text/csv",
        "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "ods": "application/vnd.oasis.opendocument.spreadsheet",
        "pdf": PDF,
    },
    "presentation": {
        "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "odp": "application/vnd.oasis.opendocument.presentation",
        "pdf": PDF,
    },
    "drawing": {
        "jpeg": "image/jpeg",
        "pdf": PDF,
        "png": "image/png",
        "svg": "image/svg+xml",
    },
}


def is_workspace_type(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith(WORKSPACE_MIME_PREFIX)


def export_mime_type(mime_type: str, conversion: Optional[WorkspaceConversion] = None) -> str:
    """Target format for exporting a native document; PDF unless the caller chose otherwise.

    The choice may be a MIME type or a short name from ``EXPORT_FORMATS`` ("docx", "csv", ...).
    """
    kind = mime_type[len(WORKSPACE_MIME_PREFIX):]
    chosen = None
    if conversion is not None:
        chosen = {
            "document": conversion.docs_to_format,
            "spreadsheet": conversion.sheets_to_format,
            "presentation": conversion.slides_to_format,
            "drawing": conversion.drawings_to_format,
        }.get(kind)
    if not chosen:
        return PDF
    return EXPORT_FORMATS.get(kind, {}).get(chosen.lower(), chosen)


def download_item(
    service: DirectoryService,
    *,
    access_token: str,
    file_id: str,
    fields: str,
    binary_property_name: str = "data",
    conversion: Optional[WorkspaceConversion] = None,
    item: Optional[NodeItem] = None,
) -> NodeItem:
    metadata = service.get_entry(access_token=access_token, file_id=file_id, fields=fields)
    mime_type = metadata.get("mimeType") or "application/octet-stream"

    if is_workspace_type(mime_type):
        mime_type = export_mime_type(mime_type, conversion)
        logger.info(f"Exporting {file_id} as {mime_type}")
        content = service.export(access_token=access_token, file_id=file_id, mime_type=mime_type)
    else:
        logger.info(f"Downloading {file_id}")
        content = service.download(access_token=access_token, file_id=file_id)

    binary: dict[str, BinaryData] = {}
    if item is not None and item.binary:
        binary.update(item.binary)
    binary[binary_property_name] = BinaryData.from_bytes(content, metadata.get("name") or "file", mime_type)
    return NodeItem(json=metadata, binary=binary)

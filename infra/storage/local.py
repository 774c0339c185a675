# Local storage for binaries produced by the download operation.
# Background jobs cannot ship file bytes through the result backend, so the
# worker writes them here and returns the path instead.

import logging
import re
from pathlib import Path
from typing import Optional

from config.settings import settings
from core.items import BinaryData, NodeItem

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


class LocalStorage:
    """Writes downloaded files under a storage directory."""

    def __init__(self, base_dir: Optional[str] = None):
        self.documents_dir = Path(base_dir or settings.STORAGE_DIR)
        self.documents_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def safe_name(name: str) -> str:
        cleaned = _UNSAFE_CHARS.sub("_", name).strip(" .")
        return cleaned or "file"

    def path_for(self, file_id: str, property_name: str, file_name: str) -> Path:
        # One file per binary property of the item
        return self.documents_dir / f"{file_id}_{self.safe_name(property_name)}_{self.safe_name(file_name)}"

    def save(self, file_id: str, property_name: str, binary: BinaryData) -> Path:
        path = self.path_for(file_id, property_name, binary.file_name)
        content = binary.content()
        path.write_bytes(content)
        logger.info(f"Saved {len(content)} bytes to {path}")
        return path

    def offload(self, item: NodeItem) -> NodeItem:
        """Move every binary of ``item`` to disk, keeping only its metadata and path."""
        if not item.binary:
            return item
        file_id = str(item.json.get("id") or "unknown") if isinstance(item.json, dict) else "unknown"
        stored: dict[str, BinaryData] = {}
        for name, binary in item.binary.items():
            if binary.path and not binary.data:
                stored[name] = binary
                continue
            path = self.save(file_id, name, binary)
            stored[name] = BinaryData(
                data="",
                mime_type=binary.mime_type,
                file_name=binary.file_name,
                file_extension=binary.file_extension,
                file_size=binary.file_size,
                path=str(path),
            )
        return NodeItem(json=item.json, binary=stored)

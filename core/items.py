from __future__ import annotations
import base64
import mimetypes
import os
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class BinaryData:
    """File content attached to an output item, base64 encoded."""

    data: str
    mime_type: str
    file_name: str
    file_extension: Optional[str] = None
    file_size: int = 0
    # Set when the content was moved to local storage and ``data`` emptied
    path: Optional[str] = None

    @classmethod
    def from_bytes(cls, content: bytes, file_name: str, mime_type: str) -> "BinaryData":
        extension = os.path.splitext(file_name)[1].lstrip(".") or None
        if extension is None:
            guessed = mimetypes.guess_extension(mime_type or "")
            extension = guessed.lstrip(".") if guessed else None
        return cls(
            data=base64.b64encode(content).decode("ascii"),
            mime_type=mime_type,
            file_name=file_name,
            file_extension=extension,
            file_size=len(content),
        )

    def content(self) -> bytes:
        return base64.b64decode(self.data)

    def to_dict(self) -> dict:
        data = {
            "data": self.data,
            "mimeType": self.mime_type,
            "fileName": self.file_name,
            "fileExtension": self.file_extension,
            "fileSize": self.file_size,
        }
        if self.path:
            data["path"] = self.path
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "BinaryData":
        return cls(
            data=data.get("data", ""),
            mime_type=data.get("mimeType", "application/octet-stream"),
            file_name=data.get("fileName", "file"),
            file_extension=data.get("fileExtension"),
            file_size=data.get("fileSize", 0),
            path=data.get("path"),
        )


@dataclass
class NodeItem:
    """One input or output record of a node run."""

    json: Any = field(default_factory=dict)
    binary: Optional[dict[str, BinaryData]] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"json": self.json}
        if self.binary:
            data["binary"] = {name: b.to_dict() for name, b in self.binary.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "NodeItem":
        binary = data.get("binary")
        return cls(
            json=data.get("json", {}),
            binary={name: BinaryData.from_dict(b) for name, b in binary.items()} if binary else None,
        )

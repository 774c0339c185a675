from __future__ import annotations
import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.assembler import FilterConfig, OutputConfig, PropertyFilter
from core.query import query_fields
from core.walker import ROOT_ID

ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
URL_ID_RE = re.compile(r"/(?:file/d|folders)/([a-zA-Z0-9_-]+)")

DEFAULT_FIELDS = ["id", "name", "mimeType"]

Operation = Literal["tree", "fileList", "downloadFile"]
SortOrder = Literal["createdDesc", "createdAsc", "modifiedDesc", "modifiedAsc", "nameAsc", "nameDesc"]
PropertiesToReturn = Literal["both", "properties", "appProperties", "none"]


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ResourceLocator(_Model):
    """A folder or file reference picked from a list, typed as an id, or pasted as a URL."""

    mode: Literal["list", "id", "url"] = "id"
    value: str = ""

    @field_validator("value")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    def resolve(self) -> str:
        if not self.value:
            return ""
        if self.mode == "url":
            m = URL_ID_RE.search(self.value)
            if not m:
                raise ValueError(f"Not a valid Google Drive URL: {self.value}")
            return m.group(1)
        if not ID_RE.match(self.value):
            raise ValueError(f"Not a valid Google Drive ID: {self.value}")
        return self.value


class PropertyFilterParam(_Model):
    property_type: Literal["properties", "appProperties"] = Field("properties", alias="propertyType")
    key: str = ""
    value: str = ""


class Filters(_Model):
    file_types: list[str] = Field(default_factory=list, alias="fileTypes")
    property_filters: list[PropertyFilterParam] = Field(default_factory=list, alias="propertyFilters")


class WorkspaceConversion(_Model):
    docs_to_format: Optional[str] = Field(None, alias="docsToFormat")
    sheets_to_format: Optional[str] = Field(None, alias="sheetsToFormat")
    slides_to_format: Optional[str] = Field(None, alias="slidesToFormat")
    drawings_to_format: Optional[str] = Field(None, alias="drawingsToFormat")


class Options(_Model):
    binary_property_name: str = Field("data", alias="binaryPropertyName")
    fields_to_return: list[str] = Field(default_factory=lambda: list(DEFAULT_FIELDS), alias="fieldsToReturn")
    google_workspace_conversion: Optional[WorkspaceConversion] = Field(None, alias="googleWorkspaceConversion")
    include_permissions: bool = Field(False, alias="includePermissions")
    properties_to_return: PropertiesToReturn = Field("both", alias="propertiesToReturn")
    query_string: str = Field("", alias="queryString")
    return_all_fields: bool = Field(False, alias="returnAllFields")


class NodeParameters(_Model):
    operation: Operation = "tree"
    folder: ResourceLocator = Field(default_factory=lambda: ResourceLocator(mode="list", value=ROOT_ID))
    file_id: ResourceLocator = Field(default_factory=ResourceLocator, alias="fileId")
    include_folders: bool = Field(False, alias="includeFolders")
    output_as_items: bool = Field(False, alias="outputAsItems")
    sort_order: SortOrder = Field("nameAsc", alias="sortOrder")
    filters: Filters = Field(default_factory=Filters)
    options: Options = Field(default_factory=Options)

    @field_validator("folder", "file_id", mode="before")
    @classmethod
    def _coerce_locator(cls, v):
        # A bare string is an id
        if isinstance(v, str):
            return {"mode": "id", "value": v}
        return v

    def start_folder_id(self) -> str:
        return self.folder.resolve() or ROOT_ID

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            file_types=list(self.filters.file_types),
            property_filters=[
                PropertyFilter(namespace=f.property_type, key=f.key, value=f.value)
                for f in self.filters.property_filters
            ],
            query=self.options.query_string,
        )

    def output_config(self) -> OutputConfig:
        return OutputConfig(
            properties_to_return=self.options.properties_to_return,
            include_permissions=self.options.include_permissions,
        )

    def _metadata_fields(self) -> list[str]:
        extra = []
        if self.options.properties_to_return in ("both", "properties"):
            extra.append("properties")
        if self.options.properties_to_return in ("both", "appProperties"):
            extra.append("appProperties")
        if self.options.include_permissions:
            extra.append("permissions")
        return extra

    def listing_fields(self) -> str:
        """Per-file field selection for folder listings.

        Type and parents are always fetched for folder detection and placement,
        along with any field the query string reads.
        """
        fields = list(self.options.fields_to_return or DEFAULT_FIELDS)
        fields += ["mimeType", "parents"]
        fields += query_fields(self.options.query_string)
        return ",".join(dict.fromkeys(fields + self._metadata_fields()))

    def download_fields(self) -> str:
        if self.options.return_all_fields:
            return "*"
        fields = list(self.options.fields_to_return or DEFAULT_FIELDS) + ["mimeType", "name"]
        return ",".join(dict.fromkeys(fields + self._metadata_fields()))

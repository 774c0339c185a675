from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from connectors.base import FOLDER_MIME_TYPE, DirectoryEntry
from core.query import compile_query

logger = logging.getLogger(__name__)

VIRTUAL_ROOT_NAME = "(root)"

PROPERTY_NAMESPACES = ("properties", "appProperties")


@dataclass
class PropertyFilter:
    namespace: str = "properties"
    key: str = ""
    value: str = ""

    def matches(self, entry: DirectoryEntry) -> bool:
        # Incomplete triples do not constrain anything
        if not self.key or not self.value:
            return True
        bag = entry.metadata(self.namespace)
        if not bag:
            return False
        return bag.get(self.key) == self.value


@dataclass
class FilterConfig:
    file_types: list[str] = field(default_factory=list)
    property_filters: list[PropertyFilter] = field(default_factory=list)
    query: str = ""


@dataclass
class OutputConfig:
    """Which optional fields are copied from entries into output records."""

    properties_to_return: str = "both"
    include_permissions: bool = False

    @property
    def include_properties(self) -> bool:
        return self.properties_to_return in ("both", "properties")

    @property
    def include_app_properties(self) -> bool:
        return self.properties_to_return in ("both", "appProperties")

    def decorate(self, record: dict, entry: DirectoryEntry) -> dict:
        if self.include_properties and entry.properties:
            record["properties"] = entry.properties
        if self.include_app_properties and entry.app_properties:
            record["appProperties"] = entry.app_properties
        if self.include_permissions and entry.permissions:
            record["permissions"] = entry.permissions
        return record


@dataclass
class TreeNode:
    id: str
    name: str
    mime_type: str
    children: list["TreeNode"] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "mimeType": self.mime_type}
        data.update(self.attributes)
        data["children"] = [child.to_dict() for child in self.children]
        return data

    def iter_ids(self) -> Iterable[str]:
        for child in self.children:
            yield child.id
            yield from child.iter_ids()


@dataclass(frozen=True)
class RealParent:
    id: str


@dataclass(frozen=True)
class VirtualRoot:
    pass


ParentResolution = Union[RealParent, VirtualRoot]


def resolve_parent(entry: DirectoryEntry, nodes_by_id: dict[str, TreeNode]) -> ParentResolution:
    """Place an entry under its first parent if that parent survived filtering."""
    parent_id = entry.first_parent
    if parent_id is not None and parent_id in nodes_by_id:
        return RealParent(parent_id)
    return VirtualRoot()


# Filters

def filter_by_type(entries: list[DirectoryEntry], file_types: list[str]) -> list[DirectoryEntry]:
    if not file_types:
        return entries
    allowed = set(file_types)
    return [e for e in entries if e.mime_type in allowed]


def filter_by_properties(entries: list[DirectoryEntry], filters: list[PropertyFilter]) -> list[DirectoryEntry]:
    if not filters:
        return entries
    return [e for e in entries if all(f.matches(e) for f in filters)]


def filter_by_query(entries: list[DirectoryEntry], query: str) -> list[DirectoryEntry]:
    predicate = compile_query(query)
    if predicate is None:
        return entries
    return [e for e in entries if predicate(e)]


def apply_filters(entries: list[DirectoryEntry], config: FilterConfig) -> list[DirectoryEntry]:
    """Type, then metadata, then query filter. Never touches what was fetched."""
    survivors = filter_by_type(entries, config.file_types)
    survivors = filter_by_properties(survivors, config.property_filters)
    survivors = filter_by_query(survivors, config.query)
    logger.debug(f"{len(survivors)} of {len(entries)} entries passed filters")
    return survivors


# Shaping

def _is_ancestor(node_id: str, parent_id: str, linked_parents: dict[str, set[str]]) -> bool:
    """True when linking node_id under parent_id would close a loop."""
    pending = [parent_id]
    visited: set[str] = set()
    while pending:
        current = pending.pop()
        if current == node_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        pending.extend(linked_parents.get(current, ()))
    return False


def build_tree(
    entries: list[DirectoryEntry],
    start_id: str,
    output: Optional[OutputConfig] = None,
) -> TreeNode:
    output = output or OutputConfig()
    nodes_by_id: dict[str, TreeNode] = {}
    for entry in entries:
        nodes_by_id[entry.id] = TreeNode(
            id=entry.id,
            name=entry.name,
            mime_type=entry.mime_type,
            attributes=output.decorate({}, entry),
        )

    virtual_root = TreeNode(id=start_id, name=VIRTUAL_ROOT_NAME, mime_type=FOLDER_MIME_TYPE)
    # Every link made so far, child id -> parent ids
    linked_parents: dict[str, set[str]] = {}

    for entry in entries:
        node = nodes_by_id[entry.id]
        placement = resolve_parent(entry, nodes_by_id)
        if isinstance(placement, RealParent) and _is_ancestor(entry.id, placement.id, linked_parents):
            logger.debug(f"Cycle at {entry.id} under {placement.id}, placing it under the root")
            placement = VirtualRoot()
        if isinstance(placement, RealParent):
            nodes_by_id[placement.id].children.append(node)
            linked_parents.setdefault(entry.id, set()).add(placement.id)
        else:
            virtual_root.children.append(node)

    return nodes_by_id.get(start_id, virtual_root)


def build_flat_list(
    entries: list[DirectoryEntry],
    include_folders: bool = False,
    output: Optional[OutputConfig] = None,
) -> list[dict]:
    output = output or OutputConfig()
    if not include_folders:
        entries = [e for e in entries if not e.is_folder]
    return [
        output.decorate(
            {"id": e.id, "name": e.name, "mimeType": e.mime_type, "parents": list(e.parents)},
            e,
        )
        for e in entries
    ]

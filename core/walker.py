from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from connectors.base import DirectoryEntry, DirectoryService

logger = logging.getLogger(__name__)

ROOT_ID = "root"


class FolderDiscovery(str, Enum):
    """When newly listed folders are queued for expansion."""

    # Scan every page of a folder listing for subfolders
    EVERY_PAGE = "every_page"
    # Scan only the last page; folders seen solely on earlier pages are not expanded
    TERMINAL_PAGE = "terminal_page"


@dataclass
class WalkResult:
    flat: list[DirectoryEntry] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)
    requests: int = 0


def walk(
    service: DirectoryService,
    *,
    access_token: str,
    start_id: str = ROOT_ID,
    fields: str = "id,name,mimeType,parents",
    page_size: int = 1000,
    include_all_drives: bool = True,
    discovery: FolderDiscovery = FolderDiscovery.EVERY_PAGE,
) -> WalkResult:
    """Breadth-first listing of everything reachable from ``start_id``.

    Every entry of every page lands in ``flat`` in arrival order, with no
    deduplication across folders. Each folder id is expanded at most once, so
    cycles and multi-parent folders terminate. Transport errors propagate and
    abort the whole walk.
    """
    start_id = start_id or ROOT_ID
    frontier: deque[str] = deque([start_id])
    result = WalkResult(seen={start_id})

    while frontier:
        current = frontier.popleft()
        logger.debug(f"Expanding folder {current}")
        page_token = None
        while True:
            page = service.list_children(
                access_token=access_token,
                parent_id=current,
                fields=fields,
                page_size=page_size,
                page_token=page_token,
                include_all_drives=include_all_drives,
            )
            result.requests += 1
            result.flat.extend(page.entries)

            if discovery == FolderDiscovery.EVERY_PAGE or not page.next_page_token:
                for entry in page.entries:
                    if entry.is_folder and entry.id not in result.seen:
                        result.seen.add(entry.id)
                        frontier.append(entry.id)

            page_token = page.next_page_token
            if not page_token:
                break

    logger.info(
        f"Walked {len(result.seen)} folders from {start_id}: "
        f"{len(result.flat)} entries in {result.requests} requests ({discovery.value})"
    )
    return result

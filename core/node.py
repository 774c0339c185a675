from __future__ import annotations
import logging
from typing import Optional, Sequence, Union

import httpx
from pydantic import ValidationError

from config.settings import settings
from connectors.base import DirectoryService
from core.assembler import apply_filters, build_flat_list, build_tree
from core.download import download_item
from core.errors import DriveTreeError, MissingIdentifierError, NodeOperationError
from core.items import NodeItem
from core.parameters import NodeParameters
from core.walker import FolderDiscovery, walk

logger = logging.getLogger(__name__)


class DriveTreeNode:
    """Runs one of the tree / fileList / downloadFile operations for each input item.

    Items are processed one after another. A failing item aborts the run with
    NodeOperationError, unless ``continue_on_fail`` is set, in which case the
    item yields ``{"error": message}`` and the remaining items still run.
    """

    def __init__(
        self,
        service: DirectoryService,
        access_token: str,
        *,
        page_size: Optional[int] = None,
        discovery: Optional[FolderDiscovery] = None,
        include_all_drives: bool = True,
    ):
        self.service = service
        self.access_token = access_token
        self.page_size = page_size or settings.DRIVE_PAGE_SIZE
        self.discovery = discovery or FolderDiscovery(settings.FOLDER_DISCOVERY)
        self.include_all_drives = include_all_drives

    def execute(
        self,
        items: Sequence[NodeItem],
        parameters: Union[NodeParameters, Sequence[NodeParameters]],
        *,
        continue_on_fail: bool = False,
    ) -> list[NodeItem]:
        """``parameters`` is either shared by all items or given once per item."""
        items = list(items) or [NodeItem()]
        results: list[NodeItem] = []
        for index, item in enumerate(items):
            params = parameters if isinstance(parameters, NodeParameters) else parameters[index]
            try:
                results.extend(self._run_item(item, params))
            except (DriveTreeError, httpx.HTTPError, ValueError, ValidationError) as e:
                message = self._error_message(e)
                if continue_on_fail:
                    logger.warning(f"Item {index} failed ({params.operation}): {message}")
                    results.append(NodeItem(json={"error": message}))
                    continue
                if isinstance(e, NodeOperationError):
                    e.item_index = index
                    raise
                raise NodeOperationError(message, item_index=index) from e
        return results

    @staticmethod
    def _error_message(error: Exception) -> str:
        if isinstance(error, httpx.HTTPStatusError):
            return f"{error.response.status_code} {error.response.reason_phrase}: {error.request.url}"
        return str(error) or error.__class__.__name__

    def _run_item(self, item: NodeItem, params: NodeParameters) -> list[NodeItem]:
        if params.operation == "downloadFile":
            return [self.download(item, params)]
        if params.operation == "fileList":
            records = self.file_list(params)
            if params.output_as_items:
                return [NodeItem(json=record) for record in records]
            return [NodeItem(json=records)]
        return [NodeItem(json=self.tree(params))]

    def _collect(self, params: NodeParameters):
        start_id = params.start_folder_id()
        result = walk(
            self.service,
            access_token=self.access_token,
            start_id=start_id,
            fields=params.listing_fields(),
            page_size=self.page_size,
            include_all_drives=self.include_all_drives,
            discovery=self.discovery,
        )
        return start_id, apply_filters(result.flat, params.filter_config())

    def tree(self, params: NodeParameters) -> dict:
        start_id, survivors = self._collect(params)
        return build_tree(survivors, start_id, params.output_config()).to_dict()

    def file_list(self, params: NodeParameters) -> list[dict]:
        _, survivors = self._collect(params)
        return build_flat_list(survivors, include_folders=params.include_folders, output=params.output_config())

    def download(self, item: NodeItem, params: NodeParameters) -> NodeItem:
        file_id = params.file_id.resolve()
        if not file_id:
            raise MissingIdentifierError("File ID is required")
        return download_item(
            self.service,
            access_token=self.access_token,
            file_id=file_id,
            fields=params.download_fields(),
            binary_property_name=params.options.binary_property_name or "data",
            conversion=params.options.google_workspace_conversion,
            item=item,
        )

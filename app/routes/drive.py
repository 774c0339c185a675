from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import Response
from pydantic import Field

from connectors.base import DirectoryService
from connectors.google_drive.auth import GoogleTokenManager
from connectors.registry import get_connector
from core import picker
from core.items import NodeItem
from core.node import DriveTreeNode
from core.parameters import NodeParameters, Options, SortOrder, WorkspaceConversion

router = APIRouter()


def get_service() -> DirectoryService:
    return get_connector("google_drive")


def get_access_token(authorization: Optional[str] = Header(default=None)) -> str:
    """Bearer token from the request, else the locally stored Google credentials."""
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    token = GoogleTokenManager().get_valid_access_token()
    if not token:
        raise HTTPException(status_code=401, detail="No Google access token available")
    return token


def get_node(
    service: DirectoryService = Depends(get_service),
    access_token: str = Depends(get_access_token),
) -> DriveTreeNode:
    return DriveTreeNode(service, access_token)


class ExecuteRequest(NodeParameters):
    items: list[dict] = Field(default_factory=list)
    continue_on_fail: bool = Field(False, alias="continueOnFail")


@router.post("/execute")
def execute(req: ExecuteRequest, node: DriveTreeNode = Depends(get_node)) -> dict:
    items = [NodeItem.from_dict(i) for i in req.items]
    results = node.execute(items, req, continue_on_fail=req.continue_on_fail)
    return {"items": [r.to_dict() for r in results]}


@router.post("/tree")
def tree(params: NodeParameters, node: DriveTreeNode = Depends(get_node)) -> dict:
    params = params.model_copy(update={"operation": "tree"})
    return node.execute([NodeItem()], params)[0].json


@router.post("/files")
def file_list(params: NodeParameters, node: DriveTreeNode = Depends(get_node)) -> list[dict]:
    params = params.model_copy(update={"operation": "fileList", "output_as_items": False})
    return node.execute([NodeItem()], params)[0].json


@router.get("/files/{file_id}/content")
def download(
    file_id: str,
    export_format: Optional[str] = Query(default=None, description="Export format for Google Workspace files"),
    node: DriveTreeNode = Depends(get_node),
) -> Response:
    conversion = None
    if export_format:
        conversion = WorkspaceConversion(
            docs_to_format=export_format,
            sheets_to_format=export_format,
            slides_to_format=export_format,
            drawings_to_format=export_format,
        )
    params = NodeParameters(
        operation="downloadFile",
        file_id=file_id,
        options=Options(google_workspace_conversion=conversion),
    )
    item = node.execute([NodeItem()], params)[0]
    binary = item.binary["data"]
    return Response(
        content=binary.content(),
        media_type=binary.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{binary.file_name}"'},
    )


@router.get("/search/folders")
def search_folders(
    filter: Optional[str] = None,
    sort_order: SortOrder = "nameAsc",
    service: DirectoryService = Depends(get_service),
    access_token: str = Depends(get_access_token),
) -> list[dict]:
    results = picker.search_folders(service, access_token=access_token, filter=filter, sort_order=sort_order)
    return [r.to_dict() for r in results]


@router.get("/search/files")
def search_files(
    folder_id: str = "root",
    filter: Optional[str] = None,
    service: DirectoryService = Depends(get_service),
    access_token: str = Depends(get_access_token),
) -> list[dict]:
    results = picker.search_files(service, access_token=access_token, folder_id=folder_id, filter=filter)
    return [r.to_dict() for r in results]

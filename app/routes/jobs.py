from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from core.parameters import NodeParameters

router = APIRouter()


class JobRequest(BaseModel):
    parameters: NodeParameters = Field(default_factory=NodeParameters)
    items: list[dict] = Field(default_factory=list)
    continue_on_fail: bool = False
    access_token: Optional[str] = None


class JobResponse(BaseModel):
    task_id: str
    status: str


class JobStatus(BaseModel):
    task_id: str
    state: str
    result: Optional[Any] = None
    error: Optional[str] = None


@router.post("", response_model=JobResponse)
def dispatch_job(req: JobRequest) -> JobResponse:
    try:
        from workers.celery_worker import run_drive_node
    except ImportError:
        raise HTTPException(status_code=500, detail="Celery worker not available") from None

    payload = {
        "parameters": req.parameters.model_dump(by_alias=True),
        "items": req.items,
        "continue_on_fail": req.continue_on_fail,
        "access_token": req.access_token,
    }
    result = run_drive_node.delay(payload)
    return JobResponse(task_id=result.id, status="dispatched")


@router.get("/{task_id}", response_model=JobStatus)
def job_status(task_id: str) -> JobStatus:
    from workers.celery_worker import app as celery_app

    result = celery_app.AsyncResult(task_id)
    if result.failed():
        return JobStatus(task_id=task_id, state=result.state, error=str(result.result))
    return JobStatus(
        task_id=task_id,
        state=result.state,
        result=result.result if result.successful() else None,
    )

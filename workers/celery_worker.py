#!/usr/bin/env python3
"""
Celery worker for Drive Tree
- Runs a Drive node (tree / fileList / downloadFile) for a batch of items
- Downloaded binaries are written to LocalStorage and returned by path
"""

import logging
import os
from typing import Any, Dict

from celery import Celery
from dotenv import load_dotenv
from kombu import Queue

from config.settings import PROJECT_ROOT, settings
from connectors.google_drive.auth import GoogleTokenManager
from connectors.registry import get_connector
from core.items import NodeItem
from core.node import DriveTreeNode
from core.parameters import NodeParameters
from infra.storage.local import LocalStorage

# Load .env from project root and override any existing env in the process
load_dotenv(dotenv_path=os.path.join(PROJECT_ROOT, ".env"), override=True)

logging.basicConfig(level=os.getenv("LOG_LEVEL", settings.LOG_LEVEL))
logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", settings.REDIS_URL)

app = Celery(
    "drive_tree",
    broker=REDIS_URL,
    backend=REDIS_URL,
)

TRAVERSAL_QUEUE = "drivetree.traversal"

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # One traversal at a time per worker process
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=100,
    task_routes={
        "tasks.run_drive_node": {"queue": TRAVERSAL_QUEUE},
    },
    task_queues=(Queue(TRAVERSAL_QUEUE),),
    task_default_queue=TRAVERSAL_QUEUE,
    broker_connection_retry_on_startup=True,
    result_expires=3600,
    task_reject_on_worker_lost=True,
)


def _resolve_access_token(payload: Dict[str, Any]) -> str:
    token = payload.get("access_token") or GoogleTokenManager().get_valid_access_token()
    if not token:
        raise RuntimeError("No access token available for Google Drive")
    return token


@app.task(name="tasks.run_drive_node", bind=True)
def run_drive_node(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Execute the node for ``payload["parameters"]`` over ``payload["items"]``.

    Payload keys: parameters (node parameters), items (optional input items),
    continue_on_fail (bool), access_token (optional; stored credentials otherwise).
    """
    params = NodeParameters.model_validate(payload.get("parameters") or {})
    items = [NodeItem.from_dict(i) for i in payload.get("items") or []]
    logger.info(f"Running {params.operation} for {max(len(items), 1)} item(s)")

    node = DriveTreeNode(get_connector("google_drive"), _resolve_access_token(payload))
    results = node.execute(items, params, continue_on_fail=bool(payload.get("continue_on_fail")))

    storage = LocalStorage()
    results = [storage.offload(r) for r in results]
    logger.info(f"Finished {params.operation}: {len(results)} output item(s)")
    return {"items": [r.to_dict() for r in results]}

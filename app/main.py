import logging
import os

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.routes import drive, jobs, oauth
from config.settings import PROJECT_ROOT, settings
from core.errors import NodeOperationError

# Load .env early so os.getenv sees values, using absolute project path and overriding
load_dotenv(dotenv_path=os.path.join(PROJECT_ROOT, ".env"), override=True)

logging.basicConfig(level=os.getenv("LOG_LEVEL", settings.LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(title="Drive Tree API")


@app.exception_handler(NodeOperationError)
async def node_operation_error_handler(request: Request, exc: NodeOperationError) -> JSONResponse:
    status_code = 400
    # Remote failures keep the status Google answered with
    if isinstance(exc.__cause__, httpx.HTTPStatusError):
        status_code = exc.__cause__.response.status_code
    logger.error(f"{request.url.path} failed for item {exc.item_index}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "item_index": exc.item_index})


@app.get("/api/v1/health")
def health():
    return {"status": "ok"}


app.include_router(oauth.router, prefix="/auth", tags=["oauth"])
app.include_router(drive.router, prefix="/drive", tags=["drive"])
app.include_router(jobs.router, prefix="/drive/jobs", tags=["jobs"])

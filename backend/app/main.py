import asyncio
import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.lifecycle import (
    check_db_health,
    get_article_fetcher,
    get_db_manager,
    lifespan,
)
from freereader.crawler import ExtractionCancelled
from freereader.crawler.orchestrator import ArticleFetcher
from freereader.crawler.utils import CancellationToken
from freereader.models.database import DatabaseManager
from freereader.utils.comprehensive_telemetry import ExtractionLogger
from freereader.utils.extraction_outcomes import GENERIC_FAILURE_MESSAGE
from freereader.utils.reliability import ReliabilityTracker

logger = logging.getLogger(__name__)

# How often a running extraction checks for a client disconnect
DISCONNECT_POLL_SECONDS = 0.5
# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499

app = FastAPI(title="freereader", lifespan=lifespan)

# CORS configuration - allowed origins via ALLOWED_ORIGINS (comma-separated)
allowed = os.environ.get("ALLOWED_ORIGINS", "*")
if allowed == "*":
    origins = ["*"]
else:
    origins = [o.strip() for o in allowed.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class FetchArticleIn(BaseModel):
    # Missing or malformed URLs are rejected by the orchestrator as invalid input
    url: Optional[str] = None


@app.get("/health")
async def health_check():
    """Health check endpoint for the load balancer."""
    return {"status": "healthy", "service": "api"}


@app.get("/ready")
async def readiness_check(db: Optional[DatabaseManager] = Depends(get_db_manager)):
    """Readiness check: 200 once startup finished and the database answers."""
    if not getattr(app.state, "ready", False):
        raise HTTPException(
            status_code=503, detail="Application not ready: startup incomplete"
        )

    db_healthy, db_message = check_db_health(db)
    if not db_healthy:
        raise HTTPException(status_code=503, detail=f"Application not ready: {db_message}")

    return {"status": "ready", "service": "api"}


async def _run_cancellable(request: Request, fetcher: ArticleFetcher, url: str):
    """Run the blocking extraction in a worker thread.

    While it runs, the client connection is polled; a disconnect cancels the
    token, which closes the in-flight fetch and stops further attempts.
    """
    token = CancellationToken()
    task = asyncio.ensure_future(run_in_threadpool(fetcher.fetch_article, url, token))
    while not task.done():
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            break
        if not token.cancelled and await request.is_disconnected():
            logger.info(f"Client disconnected, cancelling extraction of {url}")
            token.cancel()
    return task.result()


@app.post("/api/fetch-article")
async def fetch_article(
    payload: FetchArticleIn,
    request: Request,
    fetcher: Optional[ArticleFetcher] = Depends(get_article_fetcher),
):
    if fetcher is None:
        return JSONResponse(status_code=503, content={"error": GENERIC_FAILURE_MESSAGE})

    try:
        response = await _run_cancellable(request, fetcher, payload.url)
    except ExtractionCancelled:
        return JSONResponse(
            status_code=CLIENT_CLOSED_REQUEST, content={"error": "Request cancelled"}
        )

    if response.ok:
        return response.to_dict()

    status_code = 400 if response.error_type == "invalid_input" else 500
    return JSONResponse(status_code=status_code, content={"error": response.error})


@app.get("/api/telemetry/logs")
def telemetry_logs(
    limit: int = Query(50, ge=1, le=1000),
    db: Optional[DatabaseManager] = Depends(get_db_manager),
):
    """Most recent extraction attempts, newest first."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return ExtractionLogger(db).recent(limit)


@app.get("/api/telemetry/reliability")
def telemetry_reliability(
    limit: int = Query(10, ge=1, le=1000),
    db: Optional[DatabaseManager] = Depends(get_db_manager),
):
    """Top domains by success rate."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return ReliabilityTracker(db).top(limit)


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    logger.exception("Unhandled error serving %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE_MESSAGE})

"""Administrative HTTP routes: health reporting and index rebuilds."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...models.health import HealthResponse, ReindexResponse
from ...services.docs_index import DocsIndex
from ...services.lifecycle import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter()


def get_index(request: Request) -> DocsIndex:
    return request.app.state.index


def get_lifecycle(request: Request) -> ConnectionManager:
    return request.app.state.lifecycle


@router.get("/health", response_model=HealthResponse)
async def health(lifecycle: ConnectionManager = Depends(get_lifecycle)):
    """Report liveness, drain state and connection ages."""
    return HealthResponse(ok=True, **lifecycle.health())


@router.post("/reindex", response_model=ReindexResponse)
def reindex(
    index: DocsIndex = Depends(get_index),
    lifecycle: ConnectionManager = Depends(get_lifecycle),
):
    """Rebuild the documentation index from disk and swap it in atomically."""
    if lifecycle.shutting_down:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    start_time = time.time()
    try:
        count = index.rebuild()
    except Exception as exc:
        logger.exception("Reindex failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "reindex_failed", "message": f"Failed to rebuild index: {exc}"},
        ) from exc

    logger.info(
        "Reindex complete",
        extra={"count": count, "duration_ms": f"{(time.time() - start_time) * 1000:.2f}"},
    )
    return ReindexResponse(ok=True, count=count)


__all__ = ["router", "get_index", "get_lifecycle"]

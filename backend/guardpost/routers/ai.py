"""API routes for natural-language security queries."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from guardpost.core.context import RequesterContext, get_requester_context
from guardpost.core.errors import InputValidationError
from guardpost.core.logging import logger
from guardpost.models.query import AIQueryRequest, AIQueryResponse
from guardpost.services.query_orchestrator import security_query_orchestrator


router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/query", response_model=AIQueryResponse)
async def process_ai_query(
    request: AIQueryRequest,
    context: RequesterContext = Depends(get_requester_context),
) -> AIQueryResponse:
    """Answer a free-text question about the current security state."""
    requester_id = (request.requester_id or "").strip()[:128] or context.requester_id
    try:
        return await security_query_orchestrator.process_query(request.query, requester_id=requester_id)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.error("AI query endpoint failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Query processing failed")


@router.get("/queries")
def list_queries(
    requester_id: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=500),
):
    entries = security_query_orchestrator.recent_queries(requester_id=requester_id, limit=limit)
    return {
        "items": [entry.model_dump(mode="json") for entry in entries],
        "requester_id": requester_id,
    }


@router.get("/functions")
def list_functions():
    return {
        "items": [info.model_dump() for info in security_query_orchestrator.registry.describe()],
        "selection_cap": security_query_orchestrator.selector.cap,
    }


@router.get("/health")
async def ai_health() -> dict:
    """Check analyst pipeline health."""
    return {
        "status": "healthy",
        "runtime": security_query_orchestrator.get_runtime_info(),
    }


@router.get("/metrics")
async def ai_metrics() -> dict:
    """Get rolling query latency and outcome metrics."""
    return security_query_orchestrator.get_latency_metrics()

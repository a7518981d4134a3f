"""API routes for the monitored deployment's entity data."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from guardpost.core.errors import DataReadError
from guardpost.core.logging import logger
from guardpost.services.demo_seed import seed_demo_deployment
from guardpost.services.function_registry import FunctionCall
from guardpost.services.query_orchestrator import security_query_orchestrator


router = APIRouter(prefix="/security", tags=["security"])


@router.post("/seed/demo")
def seed_demo():
    """Replace stored entities with the demonstration deployment."""
    try:
        return seed_demo_deployment(security_query_orchestrator.store)
    except Exception as exc:
        logger.error("Demo seed failed", error=str(exc))
        raise HTTPException(status_code=500, detail="Demo seed failed")


@router.get("/snapshot")
def snapshot():
    try:
        return security_query_orchestrator.registry.execute(FunctionCall(name="system_snapshot"))
    except DataReadError as exc:
        logger.error("Snapshot read failed", function=exc.function_name, error=str(exc))
        raise HTTPException(status_code=503, detail="Security data unavailable")

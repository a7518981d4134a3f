"""Models for natural-language security queries and their audit trail."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryOutcome(str, Enum):
    """Terminal outcome recorded for one processed query."""

    COMPLETED = "completed"
    DEGRADED = "degraded"


class AIQueryRequest(BaseModel):
    """Free-text question about the security state."""

    query: str = Field(..., max_length=2000)
    requester_id: Optional[str] = None


class AIQueryResponse(BaseModel):
    """Answer returned to the caller with usage telemetry."""

    model_config = ConfigDict(populate_by_name=True)

    response: str
    execution_time: float = Field(default=0.0, ge=0, alias="executionTime")
    functions_used: List[str] = Field(default_factory=list, alias="functionsUsed")


class QueryLogEntry(BaseModel):
    """Append-only audit record of one processed query."""

    log_id: str
    query: str
    response: str
    requester_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)
    execution_time: float = Field(default=0.0, ge=0)
    functions_used: List[str] = Field(default_factory=list)
    status: QueryOutcome = QueryOutcome.COMPLETED


class RegistryFunctionInfo(BaseModel):
    """Public description of one registry function."""

    name: str
    title: str
    description: str
    category: str

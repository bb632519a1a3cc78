"""Health and execution metrics models."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel


class HealthCheck(BaseModel):
    status: str                             # "healthy" | "unhealthy"
    response_time_ms: float
    status_code: Optional[int] = None
    error: Optional[str] = None


class HealthReport(BaseModel):
    """Result of probing both external collaborators."""

    status: str                             # "healthy" | "degraded" | "unhealthy"
    timestamp: datetime
    checks: Dict[str, HealthCheck] = {}
    total_response_time_ms: float = 0.0


class ExecutionStats(BaseModel):
    """Cumulative execution counters kept in the snapshot store."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    last_execution: Optional[datetime] = None
    average_duration: float = 0.0


class ExecutionLogEntry(BaseModel):
    timestamp: datetime
    operation: str
    success: bool
    duration: float
    details: dict = {}

"""
API Response models
"""
from typing import Dict, Optional
from pydantic import BaseModel, Field, StrictStr
from datetime import datetime, timezone


class ErrorDetail(BaseModel):
    """Error information sent to the client"""
    message: StrictStr
    status: int
    code: Optional[StrictStr] = None


class ErrorEnvelope(BaseModel):
    """Structured error response: {"error": {...}}"""
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    environment: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: Optional[str] = None


class MetricsResponse(BaseModel):
    """Response counters keyed by status code and duration bucket"""
    responses: Dict[str, int] = Field(default_factory=dict)
    errors: Dict[str, int] = Field(default_factory=dict)
    duration: Dict[str, int] = Field(default_factory=dict)

"""API Pydantic models: request bodies and response shapes."""

from .requests import DateRangeRequest, ReconcileRequest, SnapshotUpdate
from .responses import ErrorCodes, ErrorResponse, HealthResponse, LivestreamResponse

__all__ = [
    "DateRangeRequest",
    "ErrorCodes",
    "ErrorResponse",
    "HealthResponse",
    "LivestreamResponse",
    "ReconcileRequest",
    "SnapshotUpdate",
]

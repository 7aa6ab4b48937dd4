"""
API Models - pydantic request/response schemas.
"""
from .documents import AnalysisDocument
from .requests import (
    AnalyzeRequest,
    ContextRequest,
    ContextResponse,
    HealthResponse,
    LocationInput,
    ReportRequest,
)

__all__ = [
    "AnalysisDocument",
    "AnalyzeRequest",
    "ContextRequest",
    "ContextResponse",
    "HealthResponse",
    "LocationInput",
    "ReportRequest",
]

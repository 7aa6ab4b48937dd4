"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    SurveillanceError,
    InvalidRequestError,
    LocationResolutionError,
    AuthenticationError,
    EntitlementError,
    AnalysisAccessError,
    AnalysisNotFoundError,
    ReportGenerationError,
    AdapterError,
    AdapterHTTPError,
    AdapterNetworkError,
    AdapterResponseError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "SurveillanceError",
    "InvalidRequestError",
    "LocationResolutionError",
    "AuthenticationError",
    "EntitlementError",
    "AnalysisAccessError",
    "AnalysisNotFoundError",
    "ReportGenerationError",
    "AdapterError",
    "AdapterHTTPError",
    "AdapterNetworkError",
    "AdapterResponseError",
]

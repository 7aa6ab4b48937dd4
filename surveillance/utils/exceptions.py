"""
Custom Exception Hierarchy

Specific exception types for each error category of the surveillance service,
carrying the HTTP status they map to and structured details for API responses.
"""
from typing import Optional, Dict, Any


class SurveillanceError(Exception):
    """Base exception for all surveillance service errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        payload: Dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


# ---- Client-class errors (never retried) ----

class InvalidRequestError(SurveillanceError):
    """Malformed or missing request fields."""

    status_code = 400

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_REQUEST", details=details)


class LocationResolutionError(SurveillanceError):
    """The supplied ZIP code / state does not map to a known region."""

    status_code = 400

    def __init__(self, message: str = "Could not resolve location", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="LOCATION_UNRESOLVED", details=details)


class AuthenticationError(SurveillanceError):
    """Identity token missing, malformed, expired or unverifiable."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, code="UNAUTHORIZED")


class EntitlementError(SurveillanceError):
    """Caller's plan does not include the requested feature."""

    status_code = 403

    def __init__(self, message: str, required_plan: str = "pro"):
        super().__init__(
            message=message,
            code="PLAN_REQUIRED",
            details={"upgradeRequired": True, "requiredPlan": required_plan}
        )
        self.required_plan = required_plan


class AnalysisAccessError(SurveillanceError):
    """Analysis exists but belongs to another user."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, code="FORBIDDEN")


class AnalysisNotFoundError(SurveillanceError):
    """No persisted analysis under the requested id."""

    status_code = 404

    def __init__(self, analysis_id: str):
        super().__init__(
            message="Analysis not found",
            code="NOT_FOUND",
            details={"analysisId": analysis_id}
        )
        self.analysis_id = analysis_id


class ReportGenerationError(SurveillanceError):
    """Errors during PDF report generation."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="REPORT_ERROR", details=details)


# ---- Upstream data source failures (isolated per adapter) ----

class AdapterError(SurveillanceError):
    """Base class for failures inside a single data source adapter."""

    status_code = 502

    def __init__(
        self,
        message: str,
        source: str,
        code: str = "ADAPTER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=code,
            details={"source": source, **(details or {})}
        )
        self.source = source


class AdapterHTTPError(AdapterError):
    """Upstream answered with a non-2xx status (including 429)."""

    def __init__(self, source: str, label: str, upstream_status: int):
        super().__init__(
            message=f"{label} API error: {upstream_status}",
            source=source,
            code="ADAPTER_HTTP_ERROR",
            details={"upstreamStatus": upstream_status}
        )
        self.upstream_status = upstream_status

    @property
    def is_rate_limited(self) -> bool:
        return self.upstream_status == 429


class AdapterNetworkError(AdapterError):
    """Connection failure or timeout talking to the upstream endpoint."""

    def __init__(self, source: str, label: str, reason: str):
        super().__init__(
            message=f"{label} network error: {reason}",
            source=source,
            code="ADAPTER_NETWORK_ERROR",
            details={"reason": reason}
        )


class AdapterResponseError(AdapterError):
    """Upstream returned a body that is not the expected JSON array."""

    def __init__(self, source: str, label: str, reason: str):
        super().__init__(
            message=f"{label} response error: {reason}",
            source=source,
            code="ADAPTER_RESPONSE_ERROR",
            details={"reason": reason}
        )

"""
API request/response models.

Wire fields are camelCase; Python attributes are snake_case.
"""
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LocationInput(BaseModel):
    """Exactly one of zipCode or state."""
    model_config = ConfigDict(populate_by_name=True)

    zip_code: Optional[str] = Field(None, alias="zipCode", pattern=r"^\d{5}$")
    state: Optional[str] = Field(None, min_length=2, max_length=2)

    @model_validator(mode="after")
    def exactly_one(self):
        if (self.zip_code is None) == (self.state is None):
            raise ValueError("location requires exactly one of zipCode or state")
        return self


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id_token: str = Field(..., alias="userIdToken", min_length=10)
    chief_complaint: str = Field(..., alias="chiefComplaint", min_length=1, max_length=500)
    differential: List[str] = Field(..., min_length=1, max_length=20)
    location: LocationInput

    @field_validator("differential")
    @classmethod
    def non_blank_entries(cls, value: List[str]) -> List[str]:
        cleaned = [entry.strip() for entry in value]
        if any(not entry for entry in cleaned):
            raise ValueError("differential entries must not be blank")
        return cleaned


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id_token: str = Field(..., alias="userIdToken", min_length=10)
    analysis_id: UUID = Field(..., alias="analysisId")


class ContextRequest(BaseModel):
    """Surveillance context for prompt assembly from a stored analysis document."""
    analysis: Optional[Dict[str, Any]] = None
    differential: Optional[List[str]] = Field(None, max_length=20)


class ContextResponse(BaseModel):
    context: str


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    sources: List[str]

"""
Users API — Pydantic Response Schemas
======================================

What:  Pydantic models defining the JSON bodies the API returns.
Why:   One place that decides how a stored document is exposed to clients:
       `_id` becomes a string `id`, the stored datetime becomes a date.
How:   Routes declare these as `response_model`; FastAPI serializes by alias,
       so `date_of_birth` goes out as `dateOfBirth`.

Request bodies are plain dicts checked by userapi.validation, because the API
reports missing fields as 400 with its own message instead of FastAPI's 422.
"""

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """
    What:  A stored user as clients see it.
    Who:   Listed by GET /users and embedded in mutation responses.
    """
    id: str = Field(description="MongoDB ObjectId as a 24-character hex string")
    name: str = Field(description="Display name")
    email: str = Field(description="Email address, unique across users")
    date_of_birth: date = Field(
        alias="dateOfBirth",
        description="Date of birth (ISO 8601 date)",
    )

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "UserResponse":
        """Build a response model from a raw MongoDB document."""
        dob = document["dateOfBirth"]
        if isinstance(dob, datetime):
            dob = dob.date()
        return cls(
            id=str(document["_id"]),
            name=document["name"],
            email=document["email"],
            date_of_birth=dob,
        )


class UserMutationResponse(BaseModel):
    """
    What:  Envelope for create, update and delete results.
    Why:   Clients get a confirmation message plus the affected record
           (for delete, the snapshot taken just before removal).
    """
    message: str = Field(description="Human-readable success message")
    user: UserResponse = Field(description="The created, updated or deleted user")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for every non-2xx JSON response.

    Example:
        {
            "error": "validation_error",
            "message": "All fields are required.",
            "details": {"fields": {"email": "missing"}},
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check body returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="MongoDB status: connected, disconnected, index_missing")
    uptime_seconds: float = Field(description="Seconds since service started")

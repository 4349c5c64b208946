"""
Error response models.

Standardized error responses for the API.
"""

from typing import Any
from pydantic import BaseModel, Field

from shared.exceptions import InternalError, PathPalError

GENERIC_ERROR_MESSAGE = "Internal server error"


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, exc: PathPalError) -> "ErrorResponse":
        """Build the client-facing body. Internal errors keep only their code."""
        if isinstance(exc, InternalError):
            return cls(error=exc.code, message=GENERIC_ERROR_MESSAGE)
        return cls(**exc.to_dict())

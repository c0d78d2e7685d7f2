"""Common schemas: the success/error envelope used by every public response."""
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorBody(BaseModel):
    """Machine-readable failure."""

    code: str = Field(..., description="Stable error code, e.g. NO_RELEVANT_TAG")
    message: str = Field(..., description="Generic, user-safe message")
    details: Optional[Dict[str, Any]] = Field(None, description="Extra context (validation errors)")


class Envelope(BaseModel, Generic[T]):
    """{success, data, error}: exactly one of data/error is set."""

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorBody] = None

# backend/asset_diary/schemas/errors.py
"""
Error response schema shared by every global exception handler in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error body: exception class name, message, optional context."""

    error: str = Field(
        ...,
        description="Error type (e.g., 'InvalidSymbolError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )

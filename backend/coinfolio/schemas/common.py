"""Shared response schemas."""

from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body returned for business rule failures."""

    error: str
    message: str
    unlocks_at: datetime | None = None
    remaining_seconds: int | None = None

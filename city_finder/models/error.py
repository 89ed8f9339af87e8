"""Error payload returned by the lookup endpoints."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str

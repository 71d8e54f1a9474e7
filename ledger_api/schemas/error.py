"""Schema of the uniform error body, used for OpenAPI documentation."""

from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: str
    timestamp: datetime
    path: str

from pydantic import BaseModel, Field


class APIError(BaseModel):
    """Error body returned by every failing API route."""

    error: str = Field(..., description="Machine readable error type")
    error_description: str | None = Field(None, description="Human readable description")

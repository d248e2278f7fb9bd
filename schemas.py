"""Request and response bodies for the HTTP surface."""

from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


NonEmptyStr = Annotated[str, AfterValidator(_require_text)]


class SearchRequest(BaseModel):
    """Body of POST /api/search/stream."""

    query: NonEmptyStr = Field(..., description="Free-text research question")


class FollowUpRequest(BaseModel):
    """Body of POST /api/follow-up."""

    model_config = ConfigDict(populate_by_name=True)

    query: NonEmptyStr = Field(..., description="Original research question")
    ai_response: NonEmptyStr = Field(..., alias="aiResponse", description="Completed answer text")


class FollowUpResponse(BaseModel):
    questions: list[str] = Field(default_factory=list)


class SuggestionsResponse(BaseModel):
    suggestions: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Error response model"""

    error: str = Field(..., description="Error message")

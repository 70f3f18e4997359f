"""
Pydantic schemas for the Story Generation API.

Request/response envelopes for POST /api/stories/generate. Field names on
the wire are camelCase (imageData, fileName, generationTime) to match the
web client; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.tools.story.catalog import (
    DEFAULT_LANGUAGE,
    MAX_GENRES,
    MIN_GENRES,
    Genre,
    StoryLength,
    resolve_language,
)
from src.tools.story.models import StoryRecord
from src.tools.story.response_parser import ParseTier


class StoryGenerateRequest(BaseModel):
    """Request model for POST /api/stories/generate."""

    model_config = ConfigDict(populate_by_name=True)

    genres: list[Genre] = Field(
        ...,
        min_length=MIN_GENRES,
        max_length=MAX_GENRES,
        description="Between 1 and 3 genres",
    )
    length: StoryLength = Field(
        ...,
        description="Target length: short, medium or long",
    )
    language: str = Field(
        DEFAULT_LANGUAGE,
        description="Output language id (unknown ids fall back to the default)",
    )
    image_data: str = Field(
        ...,
        alias="imageData",
        description="Base64-encoded image data or data URL",
        min_length=1,
    )
    file_name: str | None = Field(
        None,
        alias="fileName",
        description="Original file name, echoed back in metadata",
    )

    @field_validator("genres")
    @classmethod
    def validate_unique_genres(cls, v: list[Genre]) -> list[Genre]:
        if len(set(v)) != len(v):
            raise ValueError("genres must be unique")
        return v

    @field_validator("image_data")
    @classmethod
    def validate_image_data_not_empty(cls, v: str) -> str:
        """Ensure image_data is not empty."""
        if not v or not v.strip():
            raise ValueError("imageData must not be empty")
        return v

    @field_validator("language", mode="before")
    @classmethod
    def resolve_unknown_language(cls, v: object) -> str:
        return resolve_language(v if isinstance(v, str) else None)


class StoryMetadata(BaseModel):
    """Request echo and timing returned with a generated story."""

    model_config = ConfigDict(populate_by_name=True)

    genres: list[str]
    length: str
    language: str
    file_name: str = Field("uploaded_image", alias="fileName")
    generation_time: int = Field(
        ...,
        alias="generationTime",
        ge=0,
        description="Generation time in milliseconds",
    )
    parse_tier: ParseTier = Field(
        ...,
        alias="parseTier",
        description="How the story was recovered from the model reply",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Completion timestamp",
    )


class StoryResponseData(BaseModel):
    """Payload of a successful generation."""

    story: StoryRecord
    metadata: StoryMetadata


class StoryGenerateResponse(BaseModel):
    """Response model for a successful POST /api/stories/generate."""

    success: Literal[True] = True
    data: StoryResponseData


class ErrorDetail(BaseModel):
    """Error body: user-facing message plus stable code."""

    message: str
    code: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Response model for any failed request."""

    success: Literal[False] = False
    error: ErrorDetail

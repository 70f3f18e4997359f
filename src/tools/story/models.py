"""
Pydantic models for the image-to-story pipeline.

GenerationRequest is the validated request shape; StoryRecord is the
pipeline's output. StoryRecord serializes with camelCase aliases
(wordCount, generatedAt) to match the API envelope.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.tools.story.catalog import (
    DEFAULT_LANGUAGE,
    MAX_GENRES,
    MIN_GENRES,
    Genre,
    StoryLength,
    resolve_language,
)


class GenerationRequest(BaseModel):
    """Validated story generation parameters (image travels separately)."""

    genres: list[Genre] = Field(
        ...,
        min_length=MIN_GENRES,
        max_length=MAX_GENRES,
        description="1-3 distinct genres, in priority order",
    )
    length: StoryLength = Field(
        ...,
        description="Target story length",
    )
    language: str = Field(
        DEFAULT_LANGUAGE,
        description="Output language id (unknown ids fall back to the default)",
    )

    @field_validator("genres")
    @classmethod
    def validate_unique_genres(cls, v: list[Genre]) -> list[Genre]:
        """Reject duplicate genres."""
        if len(set(v)) != len(v):
            raise ValueError("genres must be unique")
        return v

    @field_validator("language", mode="before")
    @classmethod
    def resolve_unknown_language(cls, v: object) -> str:
        """Unknown or missing languages resolve to the default language."""
        return resolve_language(v if isinstance(v, str) else None)

    @property
    def genre_ids(self) -> list[str]:
        return [genre.value for genre in self.genres]


class StoryRecord(BaseModel):
    """A generated story, fully populated."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, description="Story title")
    story: str = Field(..., min_length=1, description="Full story text")
    themes: list[str] = Field(default_factory=list, description="Story themes")
    inspiration: str = Field(..., description="Visual elements that inspired the story")
    word_count: int = Field(..., ge=0, alias="wordCount", description="Whitespace token count")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="generatedAt",
        description="Generation timestamp (UTC)",
    )

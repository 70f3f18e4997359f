"""
Story Pipeline Configuration
============================

Environment-driven settings for the image-to-story pipeline.
"""

import os
from dataclasses import dataclass
from enum import Enum

from src.tools.story.catalog import DEFAULT_LANGUAGE


class WordCountPolicy(str, Enum):
    """Where StoryRecord.word_count comes from."""

    RECOMPUTE = "recompute"  # always count tokens of the final story text
    TRUST_UPSTREAM = "trust_upstream"  # keep the model's wordCount when it is valid


@dataclass
class StoryConfig:
    """
    Configuration for story generation.

    Environment variables:
    - GEMINI_API_KEY / GOOGLE_API_KEY: Gemini credential
    - STORY_MODEL: Gemini vision model (default: gemini-2.5-flash)
    - STORY_TIMEOUT_SECONDS: Generation timeout (default: 30)
    - MAX_FILE_SIZE: Image size ceiling in bytes (default: 2MB)
    - STORY_SALVAGE_MAX_CHARS: Story truncation for salvaged responses (default: 1000)
    - STORY_WORD_COUNT_POLICY: recompute | trust_upstream (default: recompute)
    - STORY_DEFAULT_LANGUAGE: Fallback language id (default: fr)
    """

    api_key: str | None = None
    model: str | None = None
    timeout_seconds: float | None = None
    max_image_bytes: int | None = None
    salvage_max_chars: int | None = None
    word_count_policy: WordCountPolicy | None = None
    default_language: str | None = None

    def __post_init__(self):
        if self.api_key is None:
            self.api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if self.model is None:
            self.model = os.getenv("STORY_MODEL", "gemini-2.5-flash")
        if self.timeout_seconds is None:
            self.timeout_seconds = float(os.getenv("STORY_TIMEOUT_SECONDS", "30"))
        if self.max_image_bytes is None:
            self.max_image_bytes = int(os.getenv("MAX_FILE_SIZE", str(2 * 1024 * 1024)))
        if self.salvage_max_chars is None:
            self.salvage_max_chars = int(os.getenv("STORY_SALVAGE_MAX_CHARS", "1000"))
        if self.word_count_policy is None:
            self.word_count_policy = WordCountPolicy(
                os.getenv("STORY_WORD_COUNT_POLICY", WordCountPolicy.RECOMPUTE.value).lower()
            )
        if self.default_language is None:
            self.default_language = os.getenv("STORY_DEFAULT_LANGUAGE", DEFAULT_LANGUAGE)

"""
Story Tools Module
==================

Image-to-story generation pipeline:
- StoryPipeline: validate -> compose prompt -> Gemini vision call -> parse -> normalize
- GeminiStoryClient: timeout-bounded Gemini vision invocation
- parse_story_response: tiered recovery of JSON from free-form model output
- classify_error: maps any failure to one PipelineError

Genres, lengths and languages are static tables in catalog.py.
"""

from src.tools.story.catalog import (
    DEFAULT_LANGUAGE,
    GENRE_DESCRIPTIONS,
    LANGUAGE_PROFILES,
    LENGTH_SPECS,
    MAX_GENRES,
    Genre,
    LanguageProfile,
    LengthSpec,
    StoryLength,
    get_language_profile,
    get_length_spec,
)
from src.tools.story.config import StoryConfig, WordCountPolicy
from src.tools.story.errors import ErrorKind, PipelineError, classify_error
from src.tools.story.gemini_client import GeminiStoryClient
from src.tools.story.image_payload import ImagePayload, adapt_image_payload
from src.tools.story.models import GenerationRequest, StoryRecord
from src.tools.story.normalizer import normalize_story
from src.tools.story.pipeline import GenerationResult, StoryPipeline
from src.tools.story.prompts import compose_story_prompt
from src.tools.story.response_parser import ParseOutcome, ParseTier, parse_story_response

__all__ = [
    # Pipeline
    "StoryPipeline",
    "GenerationResult",
    "GeminiStoryClient",
    "StoryConfig",
    "WordCountPolicy",
    # Models
    "GenerationRequest",
    "StoryRecord",
    "ImagePayload",
    # Stages
    "adapt_image_payload",
    "compose_story_prompt",
    "parse_story_response",
    "ParseOutcome",
    "ParseTier",
    "normalize_story",
    # Errors
    "ErrorKind",
    "PipelineError",
    "classify_error",
    # Catalog
    "Genre",
    "StoryLength",
    "LengthSpec",
    "LanguageProfile",
    "DEFAULT_LANGUAGE",
    "MAX_GENRES",
    "GENRE_DESCRIPTIONS",
    "LENGTH_SPECS",
    "LANGUAGE_PROFILES",
    "get_length_spec",
    "get_language_profile",
]

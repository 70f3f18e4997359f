"""Validate and normalize parsed story candidates into StoryRecords."""

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from src.tools.story.config import WordCountPolicy
from src.tools.story.errors import ErrorKind, PipelineError
from src.tools.story.models import StoryRecord
from src.tools.story.response_parser import (
    DEFAULT_SALVAGE_MAX_CHARS,
    SALVAGE_STORY,
    count_words,
    salvage_story_text,
)

logger = logging.getLogger(__name__)

UNTITLED_TITLE = "Untitled Story"
DEFAULT_INSPIRATION = "Inspired by the provided image"

# opening -> closing
_QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”", "«": "»"}


def _unwrap_quotes(text: str) -> str:
    """Remove one enclosing quote pair, only when it wraps the whole text."""
    if len(text) < 2:
        return text
    opening, closing = text[0], text[-1]
    if _QUOTE_PAIRS.get(opening) != closing:
        return text
    inner = text[1:-1]
    # '"Run!" she cried, "Wait."' starts and ends with quotes but is not wrapped
    if opening in inner or closing in inner:
        return text
    return inner.strip()


def _clean_text(value: Any) -> str:
    """Stringify, trim whitespace and one enclosing pair of quotes."""
    if value is None:
        return ""
    return _unwrap_quotes(str(value).strip())


def _unescape(text: str) -> str:
    """Turn literal backslash escapes left by the model into real characters."""
    return text.replace("\\n", "\n").replace('\\"', '"').replace("\\'", "'")


def _upstream_word_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


_TIMESTAMP = TypeAdapter(datetime)


def _generated_at(value: Any) -> datetime:
    """Keep a valid generatedAt from a re-parsed record, otherwise stamp now."""
    if value:
        try:
            return _TIMESTAMP.validate_python(value)
        except ValidationError:
            logger.debug(f"[STORY] Ignoring unparseable generatedAt: {str(value)[:50]}")
    return datetime.now(timezone.utc)


def normalize_story(
    candidate: dict[str, Any],
    genres: Sequence[str],
    raw_text: str = "",
    policy: WordCountPolicy = WordCountPolicy.RECOMPUTE,
    salvage_max_chars: int = DEFAULT_SALVAGE_MAX_CHARS,
) -> StoryRecord:
    """
    Build a StoryRecord from a parsed candidate.

    The only hard failure is a candidate with neither a title nor a story;
    every other gap is filled with a default.

    Args:
        candidate: Parsed object from the response parser
        genres: Request genres (default themes)
        raw_text: Original model reply, used when the story field is missing
        policy: Whether to trust the model's wordCount
        salvage_max_chars: Truncation for story text salvaged from raw_text

    Returns:
        Fully populated StoryRecord

    Raises:
        PipelineError: INVALID_STORY_STRUCTURE if title and story are both absent
    """
    title = _clean_text(candidate.get("title"))
    story = _unescape(_clean_text(candidate.get("story"))).strip()

    if not title and not story:
        logger.error(f"[STORY] Parsed response has neither title nor story: keys={list(candidate)[:10]}")
        raise PipelineError(ErrorKind.INVALID_STORY_STRUCTURE)

    if not title:
        title = UNTITLED_TITLE
    if not story:
        logger.warning("[STORY] Parsed response has no story field, using response text")
        story = salvage_story_text(raw_text, max_chars=salvage_max_chars) if raw_text else SALVAGE_STORY

    themes = candidate.get("themes")
    if isinstance(themes, (list, tuple)):
        themes = [str(theme).strip() for theme in themes if theme is not None and str(theme).strip()]
    else:
        themes = list(genres)

    inspiration = _clean_text(candidate.get("inspiration")) or DEFAULT_INSPIRATION

    word_count = None
    if policy is WordCountPolicy.TRUST_UPSTREAM:
        word_count = _upstream_word_count(candidate.get("wordCount"))
    if word_count is None:
        word_count = count_words(story)

    return StoryRecord(
        title=title,
        story=story,
        themes=themes,
        inspiration=inspiration,
        word_count=word_count,
        generated_at=_generated_at(candidate.get("generatedAt")),
    )

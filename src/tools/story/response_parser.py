"""
Story Response Parser
=====================

Turns the model's free-form reply into a story candidate dict.

The model is asked for pure JSON but regularly wraps it in markdown fences,
adds a chatty preamble, or gets cut off mid-object. Each tier is tried only
if the previous one produced nothing:

1. PARSED    - fences stripped, whole reply parsed as a JSON object
2. RECOVERED - first '{' to last '}' span parsed, then a repaired version of
               that span (or of the truncated tail) is tried; a repaired object
               must keep a non-blank title or story
3. SALVAGED  - a degraded candidate built straight from the text; never raises

The tier is reported on the returned ParseOutcome so callers can tell a clean
parse from a salvage without catching anything.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

logger = logging.getLogger(__name__)

SALVAGE_TITLE = "Generated Story"
SALVAGE_INSPIRATION = "Based on the analysis of the provided image"
SALVAGE_STORY = "The story could not be recovered from the model response."
DEFAULT_SALVAGE_MAX_CHARS = 1000

_CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_EMBEDDED_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
# Value of the "story" field up to its closing quote, or to the end of a truncated reply.
_STORY_FIELD = re.compile(r'"story"\s*:\s*"((?:[^"\\]|\\.)*)', re.DOTALL)


class ParseTier(str, Enum):
    """Which recovery tier produced the candidate."""

    PARSED = "parsed"
    RECOVERED = "recovered"
    SALVAGED = "salvaged"


@dataclass(frozen=True)
class ParseOutcome:
    """Result of parsing one model reply."""

    tier: ParseTier
    data: dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""

    @property
    def degraded(self) -> bool:
        return self.tier is ParseTier.SALVAGED


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers anywhere in the text and trim it."""
    return _CODE_FENCE.sub("", text).strip()


def count_words(text: str) -> int:
    """Count non-empty whitespace-delimited tokens."""
    return len(text.split())


def _load_object(text: str) -> dict[str, Any] | None:
    """json.loads that only accepts a top-level object."""
    try:
        data = json.loads(text, strict=False)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def repair_json(json_str: str) -> str:
    """
    Attempt to repair truncated or malformed JSON.

    Common issues from LLM responses:
    - Unterminated strings
    - Missing closing braces/brackets
    - Trailing commas
    - A key left without a value
    """
    json_str = strip_code_fences(json_str)
    if _load_object(json_str) is not None:
        return json_str

    closers: list[str] = []
    in_string = False
    escaped = False
    for ch in json_str:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            closers.append("}")
        elif ch == "[":
            closers.append("]")
        elif ch in "}]" and closers and closers[-1] == ch:
            closers.pop()

    repaired = json_str
    if in_string:
        if escaped:
            repaired = repaired[:-1]
        repaired += '"'

    repaired = repaired.rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1]
    if repaired.endswith(":"):
        repaired += " null"

    repaired += "".join(reversed(closers))
    return _TRAILING_COMMA.sub(r"\1", repaired)


def _parse_direct(raw_text: str) -> dict[str, Any] | None:
    return _load_object(strip_code_fences(raw_text))


def _parse_embedded(raw_text: str) -> dict[str, Any] | None:
    match = _EMBEDDED_OBJECT.search(raw_text)
    if match:
        span = strip_code_fences(match.group(0))
        data = _load_object(span)
        if data is not None:
            return data
    else:
        start = raw_text.find("{")
        if start < 0:
            return None
        span = strip_code_fences(raw_text[start:])

    repaired = _load_object(repair_json(span))
    if repaired is None or not _has_story_content(repaired):
        return None
    return repaired


def _has_story_content(data: dict[str, Any]) -> bool:
    """A repaired object only counts if it kept a non-blank title or story."""
    return any(
        isinstance(data.get(key), str) and data[key].strip()
        for key in ("title", "story")
    )


def _unescape_json_string(value: str) -> str:
    try:
        return json.loads(f'"{value}"', strict=False)
    except ValueError:
        return value.replace("\\n", "\n").replace('\\"', '"').replace("\\'", "'")


def salvage_story_text(raw_text: str, max_chars: int = DEFAULT_SALVAGE_MAX_CHARS) -> str:
    """
    Best-effort story text from an unparseable reply.

    Prefers the value of a "story" field found by pattern matching; otherwise
    the fence-stripped reply truncated to max_chars.
    """
    match = _STORY_FIELD.search(raw_text)
    if match:
        story = _unescape_json_string(match.group(1)).strip()
        if story:
            return story

    text = strip_code_fences(raw_text) or raw_text.strip()
    if not text:
        return SALVAGE_STORY
    return text[:max_chars] if max_chars > 0 else text


def salvage_story(
    raw_text: str,
    genres: Sequence[str],
    max_chars: int = DEFAULT_SALVAGE_MAX_CHARS,
) -> dict[str, Any]:
    """Build a degraded but structurally complete story candidate."""
    story = salvage_story_text(raw_text, max_chars=max_chars)
    return {
        "title": SALVAGE_TITLE,
        "story": story,
        "themes": list(genres),
        "inspiration": SALVAGE_INSPIRATION,
        "wordCount": count_words(story),
    }


def parse_story_response(
    raw_text: str,
    genres: Sequence[str] = (),
    salvage_max_chars: int = DEFAULT_SALVAGE_MAX_CHARS,
) -> ParseOutcome:
    """
    Parse a model reply into a story candidate, degrading instead of failing.

    Args:
        raw_text: Model reply exactly as received
        genres: Request genres, used as themes when salvaging
        salvage_max_chars: Truncation applied to salvaged free text

    Returns:
        ParseOutcome tagged with the tier that succeeded
    """
    raw_text = raw_text or ""

    data = _parse_direct(raw_text)
    if data is not None:
        return ParseOutcome(tier=ParseTier.PARSED, data=data, raw_text=raw_text)

    data = _parse_embedded(raw_text)
    if data is not None:
        logger.warning("[PARSER] Reply was not pure JSON, recovered embedded object")
        return ParseOutcome(tier=ParseTier.RECOVERED, data=data, raw_text=raw_text)

    logger.error("[PARSER] No JSON object recoverable, salvaging story from text")
    logger.error(f"[PARSER] Raw response was: {raw_text[:500]}")
    return ParseOutcome(
        tier=ParseTier.SALVAGED,
        data=salvage_story(raw_text, genres, max_chars=salvage_max_chars),
        raw_text=raw_text,
    )

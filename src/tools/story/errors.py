"""
Story Pipeline Errors
=====================

Fixed error taxonomy for the story pipeline and the classifier that maps any
exception raised along the way onto exactly one PipelineError.

Upstream failures are classified by what they are (key rejected, safety
block, quota exhausted, ...) using pattern matching over the exception's type
name and message, then by any numeric status/code attribute the SDK
attaches. Bare digits in message text are never treated as statuses. The raw
upstream message is logged, never returned to the caller.
"""

import asyncio
import logging
from enum import Enum

from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Why a pipeline run failed."""

    INVALID_REQUEST_SHAPE = "invalid_request_shape"
    INVALID_IMAGE_DATA = "invalid_image_data"
    EMPTY_RESPONSE = "empty_response"
    TIMEOUT = "timeout"
    CONTENT_REJECTED = "content_rejected"
    QUOTA_EXCEEDED = "quota_exceeded"
    PERMISSION_DENIED = "permission_denied"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INVALID_STORY_STRUCTURE = "invalid_story_structure"
    AUTHENTICATION_FAILED = "authentication_failed"
    UNCLASSIFIED = "unclassified"


# kind -> (http status hint, stable code, user-facing message)
ERROR_DETAILS: dict[ErrorKind, tuple[int, str, str]] = {
    ErrorKind.INVALID_REQUEST_SHAPE: (400, "VALIDATION_ERROR", "Invalid request data"),
    ErrorKind.INVALID_IMAGE_DATA: (400, "INVALID_IMAGE_DATA", "Invalid image data"),
    ErrorKind.EMPTY_RESPONSE: (502, "GEMINI_EMPTY_RESPONSE", "The story model returned an empty response"),
    ErrorKind.TIMEOUT: (408, "GEMINI_TIMEOUT", "Story generation timed out"),
    ErrorKind.CONTENT_REJECTED: (400, "GEMINI_SAFETY_ERROR", "Content blocked by safety filters"),
    ErrorKind.QUOTA_EXCEEDED: (429, "GEMINI_QUOTA_EXCEEDED", "Generation quota reached, please retry later"),
    ErrorKind.PERMISSION_DENIED: (403, "GEMINI_PERMISSION_DENIED", "Access to the story model was denied"),
    ErrorKind.UPSTREAM_UNAVAILABLE: (503, "GEMINI_SERVICE_UNAVAILABLE", "The story model is temporarily unavailable"),
    ErrorKind.INVALID_STORY_STRUCTURE: (500, "INVALID_STORY_STRUCTURE", "The story model returned an unusable story"),
    ErrorKind.AUTHENTICATION_FAILED: (500, "GEMINI_API_KEY_ERROR", "The story model credential was rejected"),
    ErrorKind.UNCLASSIFIED: (500, "GEMINI_GENERATION_ERROR", "Story generation failed"),
}

RETRYABLE_KINDS = frozenset({
    ErrorKind.TIMEOUT,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.UPSTREAM_UNAVAILABLE,
})

# Checked in order; first match wins.
ERROR_PATTERNS: list[tuple[ErrorKind, tuple[str, ...]]] = [
    (ErrorKind.AUTHENTICATION_FAILED, (
        "api_key", "api key", "unauthenticated", "invalid credential",
    )),
    (ErrorKind.CONTENT_REJECTED, (
        "safety", "blocked", "prohibited_content", "content policy",
    )),
    (ErrorKind.TIMEOUT, (
        "timeout", "timed out", "deadline_exceeded", "deadline exceeded",
    )),
    (ErrorKind.QUOTA_EXCEEDED, (
        "quota", "rate limit", "rate_limit", "resource_exhausted", "too many requests",
    )),
    (ErrorKind.PERMISSION_DENIED, (
        "permission_denied", "permission denied", "forbidden",
    )),
    (ErrorKind.UPSTREAM_UNAVAILABLE, (
        "unavailable", "overloaded", "service_unavailable",
    )),
]

# Numeric HTTP statuses, matched only against status/code attributes.
STATUS_CODE_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.AUTHENTICATION_FAILED,
    403: ErrorKind.PERMISSION_DENIED,
    408: ErrorKind.TIMEOUT,
    429: ErrorKind.QUOTA_EXCEEDED,
    503: ErrorKind.UPSTREAM_UNAVAILABLE,
    504: ErrorKind.TIMEOUT,
}

_STATUS_ATTRS = ("status", "code", "status_code", "reason")


class PipelineError(Exception):
    """
    Terminal failure of a story pipeline run.

    Attributes:
        kind: Member of the error taxonomy
        message: User-facing message (never raw upstream text)
        http_status_hint: Suggested transport status for the caller
        code: Stable machine-readable code for response envelopes
    """

    def __init__(self, kind: ErrorKind, message: str | None = None):
        status, code, default_message = ERROR_DETAILS[kind]
        self.kind = kind
        self.message = message or default_message
        self.http_status_hint = status
        self.code = code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry after a backoff."""
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"PipelineError(kind={self.kind.value!r}, message={self.message!r})"


def _as_status_code(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _error_text(error: BaseException) -> str:
    """Flatten the type name, message and textual status attributes into one lowercase string."""
    parts = [type(error).__name__, str(error)]
    for attr in _STATUS_ATTRS:
        value = getattr(error, attr, None)
        if value is not None and _as_status_code(value) is None:
            parts.append(str(value))
    return " ".join(parts).lower()


def _status_codes(error: BaseException) -> list[int]:
    """Numeric statuses the SDK attached to the error, if any."""
    codes = (_as_status_code(getattr(error, attr, None)) for attr in _STATUS_ATTRS)
    return [code for code in codes if code is not None]


def categorize_error(error: BaseException) -> ErrorKind:
    """Pick the ErrorKind for an arbitrary exception."""
    if isinstance(error, PipelineError):
        return error.kind
    if isinstance(error, ValidationError):
        return ErrorKind.INVALID_REQUEST_SHAPE
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT

    text = _error_text(error)
    for kind, patterns in ERROR_PATTERNS:
        if any(pattern in text for pattern in patterns):
            return kind
    for code in _status_codes(error):
        if code in STATUS_CODE_KINDS:
            return STATUS_CODE_KINDS[code]
    return ErrorKind.UNCLASSIFIED


def classify_error(error: BaseException) -> PipelineError:
    """
    Map any failure onto exactly one PipelineError.

    PipelineErrors pass through untouched. Everything else is logged with its
    original message and replaced by a PipelineError carrying the fixed
    message for its kind.
    """
    if isinstance(error, PipelineError):
        return error

    if isinstance(error, ValidationError):
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in error.errors()
        )
        return PipelineError(ErrorKind.INVALID_REQUEST_SHAPE, f"Invalid request data: {details}")

    kind = categorize_error(error)
    logger.error(
        f"[STORY] Upstream failure classified as {kind.value}: "
        f"{type(error).__name__}: {str(error)[:300]}"
    )
    return PipelineError(kind)

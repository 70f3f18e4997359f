"""Tests for the story pipeline error taxonomy and classifier."""

import asyncio

import pytest
from pydantic import ValidationError

from src.tools.story.errors import (
    ERROR_DETAILS,
    RETRYABLE_KINDS,
    ErrorKind,
    PipelineError,
    categorize_error,
    classify_error,
)
from src.tools.story.models import GenerationRequest


class FakeAPIError(Exception):
    """Mimics an SDK error carrying a status code attribute."""

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


class TestPipelineError:
    """Tests for PipelineError."""

    def test_every_kind_has_details(self):
        assert set(ERROR_DETAILS) == set(ErrorKind)

    @pytest.mark.parametrize(
        "kind,status,code",
        [
            (ErrorKind.INVALID_REQUEST_SHAPE, 400, "VALIDATION_ERROR"),
            (ErrorKind.INVALID_IMAGE_DATA, 400, "INVALID_IMAGE_DATA"),
            (ErrorKind.EMPTY_RESPONSE, 502, "GEMINI_EMPTY_RESPONSE"),
            (ErrorKind.TIMEOUT, 408, "GEMINI_TIMEOUT"),
            (ErrorKind.CONTENT_REJECTED, 400, "GEMINI_SAFETY_ERROR"),
            (ErrorKind.QUOTA_EXCEEDED, 429, "GEMINI_QUOTA_EXCEEDED"),
            (ErrorKind.PERMISSION_DENIED, 403, "GEMINI_PERMISSION_DENIED"),
            (ErrorKind.UPSTREAM_UNAVAILABLE, 503, "GEMINI_SERVICE_UNAVAILABLE"),
            (ErrorKind.INVALID_STORY_STRUCTURE, 500, "INVALID_STORY_STRUCTURE"),
            (ErrorKind.AUTHENTICATION_FAILED, 500, "GEMINI_API_KEY_ERROR"),
            (ErrorKind.UNCLASSIFIED, 500, "GEMINI_GENERATION_ERROR"),
        ],
    )
    def test_status_hints_and_codes(self, kind, status, code):
        error = PipelineError(kind)
        assert error.http_status_hint == status
        assert error.code == code
        assert error.message

    def test_retryable_kinds(self):
        assert RETRYABLE_KINDS == {ErrorKind.TIMEOUT, ErrorKind.QUOTA_EXCEEDED, ErrorKind.UPSTREAM_UNAVAILABLE}
        assert PipelineError(ErrorKind.TIMEOUT).retryable
        assert not PipelineError(ErrorKind.CONTENT_REJECTED).retryable

    def test_custom_message(self):
        error = PipelineError(ErrorKind.INVALID_IMAGE_DATA, "Image too large")
        assert error.message == "Image too large"
        assert str(error) == "Image too large"
        assert error.to_dict() == {"message": "Image too large", "code": "INVALID_IMAGE_DATA"}


class TestCategorizeError:
    """Tests for pattern-based classification."""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (Exception("API key not valid. Please pass a valid API key."), ErrorKind.AUTHENTICATION_FAILED),
            (Exception("401 UNAUTHENTICATED"), ErrorKind.AUTHENTICATION_FAILED),
            (Exception("Response blocked by SAFETY filters"), ErrorKind.CONTENT_REJECTED),
            (Exception("Request timed out"), ErrorKind.TIMEOUT),
            (Exception("504 DEADLINE_EXCEEDED"), ErrorKind.TIMEOUT),
            (Exception("429 RESOURCE_EXHAUSTED"), ErrorKind.QUOTA_EXCEEDED),
            (Exception("You exceeded your current quota"), ErrorKind.QUOTA_EXCEEDED),
            (Exception("403 PERMISSION_DENIED"), ErrorKind.PERMISSION_DENIED),
            (Exception("503 UNAVAILABLE: The model is overloaded"), ErrorKind.UPSTREAM_UNAVAILABLE),
            (ValueError("something odd"), ErrorKind.UNCLASSIFIED),
        ],
    )
    def test_message_patterns(self, error, kind):
        assert categorize_error(error) is kind

    def test_status_attribute_used(self):
        assert categorize_error(FakeAPIError(429, "slow down")) is ErrorKind.QUOTA_EXCEEDED

    @pytest.mark.parametrize(
        "code,kind",
        [
            (401, ErrorKind.AUTHENTICATION_FAILED),
            ("403", ErrorKind.PERMISSION_DENIED),
            (503, ErrorKind.UPSTREAM_UNAVAILABLE),
            (504, ErrorKind.TIMEOUT),
            (418, ErrorKind.UNCLASSIFIED),
        ],
    )
    def test_numeric_status_codes(self, code, kind):
        assert categorize_error(FakeAPIError(code, "try again later")) is kind

    @pytest.mark.parametrize(
        "message",
        [
            "Story about 401 lanterns and 503 ships",
            "Invalid argument at offset 4290",
            "Image of a 403-page manuscript could not be processed",
        ],
    )
    def test_digits_in_message_are_not_statuses(self, message):
        assert categorize_error(ValueError(message)) is ErrorKind.UNCLASSIFIED

    def test_message_pattern_wins_over_status_code(self):
        assert categorize_error(FakeAPIError(403, "API key expired")) is ErrorKind.AUTHENTICATION_FAILED

    def test_timeout_types(self):
        assert categorize_error(asyncio.TimeoutError()) is ErrorKind.TIMEOUT
        assert categorize_error(TimeoutError()) is ErrorKind.TIMEOUT

    def test_api_key_checked_before_permission(self):
        assert categorize_error(Exception("403 API_KEY_INVALID")) is ErrorKind.AUTHENTICATION_FAILED


class TestClassifyError:
    """Tests for classify_error."""

    def test_pipeline_error_passes_through(self):
        error = PipelineError(ErrorKind.TIMEOUT)
        assert classify_error(error) is error

    def test_upstream_message_not_exposed(self):
        error = classify_error(Exception("API_KEY_INVALID key=AIza-secret-value"))
        assert error.kind is ErrorKind.AUTHENTICATION_FAILED
        assert "secret" not in error.message
        assert error.message == ERROR_DETAILS[ErrorKind.AUTHENTICATION_FAILED][2]

    def test_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            GenerationRequest(genres=[], length="short")
        error = classify_error(exc_info.value)
        assert error.kind is ErrorKind.INVALID_REQUEST_SHAPE
        assert error.http_status_hint == 400
        assert error.message.startswith("Invalid request data: genres")

    def test_unknown_error(self):
        error = classify_error(RuntimeError("boom"))
        assert error.kind is ErrorKind.UNCLASSIFIED
        assert error.http_status_hint == 500

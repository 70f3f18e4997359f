"""Tests for request tracing and structured logging."""

import json
import logging

import pytest

from src.tracing import (
    StructuredFormatter,
    clear_request_id,
    get_request_id,
    new_request_id,
    set_request_id,
)


@pytest.fixture(autouse=True)
def reset_request_id():
    clear_request_id()
    yield
    clear_request_id()


def _record(msg="[STORY] hello", level=logging.INFO, **extra):
    record = logging.LogRecord("src.tools.story.pipeline", level, "pipeline.py", 42, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestId:
    """Tests for request id context helpers."""

    def test_new_request_id_binds(self):
        request_id = new_request_id()
        assert len(request_id) == 12
        assert get_request_id() == request_id

    def test_set_and_clear(self):
        set_request_id("req-1")
        assert get_request_id() == "req-1"
        clear_request_id()
        assert get_request_id() == ""


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_basic_fields(self):
        entry = json.loads(StructuredFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "src.tools.story.pipeline"
        assert entry["message"] == "[STORY] hello"
        assert "request_id" not in entry
        assert "source" not in entry

    def test_request_id_included(self):
        set_request_id("abc123")
        entry = json.loads(StructuredFormatter().format(_record()))
        assert entry["request_id"] == "abc123"

    def test_error_has_source(self):
        entry = json.loads(StructuredFormatter().format(_record(level=logging.ERROR)))
        assert entry["source"]["line"] == 42

    def test_extra_fields(self):
        entry = json.loads(StructuredFormatter().format(_record(genres=["horror"])))
        assert entry["extra"] == {"genres": ["horror"]}

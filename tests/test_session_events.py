"""Unit tests for runtime event translation and failure formatting."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from types import SimpleNamespace

import pytest
from src.session_events import (
    AssistantMessage,
    AssistantReasoning,
    ReviewFailure,
    ReviewSessionError,
    SessionError,
    SessionIdle,
    format_failure_message,
    parse_runtime_event,
)


class _EventType(Enum):
    SESSION_IDLE = "session.idle"


@pytest.mark.unit
def test_format_failure_message_without_status_or_stack() -> None:
    assert format_failure_message("boom") == "An error occurred while processing the request: boom."


@pytest.mark.unit
def test_format_failure_message_with_status_and_stack() -> None:
    assert format_failure_message("boom", status_code=401, stack="trace line") == (
        "An error occurred while processing the request [Status Code 401]: boom.\ntrace line"
    )


@pytest.mark.unit
def test_review_failure_to_error_keeps_fields() -> None:
    error = ReviewFailure(message="boom", status_code=500, stack=None).to_error()

    assert isinstance(error, ReviewSessionError)
    assert error.message == "boom"
    assert error.status_code == 500
    assert error.stack is None


@pytest.mark.unit
def test_parse_runtime_event_maps_known_types(event: Callable[..., SimpleNamespace]) -> None:
    assert parse_runtime_event(event("assistant.message", content="A")) == (
        AssistantMessage(text="A")
    )
    assert parse_runtime_event(event("assistant.reasoning", content="B")) == (
        AssistantReasoning(text="B")
    )
    assert parse_runtime_event(event("session.idle")) == SessionIdle()
    assert parse_runtime_event(
        event("session.error", message="denied", status_code=403.0, stack="s")
    ) == SessionError(message="denied", status_code=403, stack="s")


@pytest.mark.unit
def test_parse_runtime_event_accepts_enum_event_types() -> None:
    raw_event = SimpleNamespace(type=_EventType.SESSION_IDLE, data=None)

    assert parse_runtime_event(raw_event) == SessionIdle()


@pytest.mark.unit
def test_parse_runtime_event_defaults_missing_fields(
    event: Callable[..., SimpleNamespace],
) -> None:
    assert parse_runtime_event(event("assistant.message", content=None)) == (
        AssistantMessage(text="")
    )
    assert parse_runtime_event(event("session.error")) == SessionError(
        message="Unknown session error"
    )


@pytest.mark.unit
def test_parse_runtime_event_ignores_other_types(event: Callable[..., SimpleNamespace]) -> None:
    assert parse_runtime_event(event("tool.execution_complete")) is None

"""Session events, outcomes, and failure formatting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FAILURE_MESSAGE_PREFIX = "An error occurred while processing the request"

ASSISTANT_MESSAGE_EVENT = "assistant.message"
ASSISTANT_REASONING_EVENT = "assistant.reasoning"
SESSION_IDLE_EVENT = "session.idle"
SESSION_ERROR_EVENT = "session.error"


@dataclass(frozen=True, slots=True)
class AssistantMessage:
    """Complete assistant message text."""

    text: str


@dataclass(frozen=True, slots=True)
class AssistantReasoning:
    """Assistant reasoning text."""

    text: str


@dataclass(frozen=True, slots=True)
class SessionIdle:
    """The session finished processing the prompt."""


@dataclass(frozen=True, slots=True)
class SessionError:
    """The session failed."""

    message: str
    status_code: int | None = None
    stack: str | None = None


SessionEvent = AssistantMessage | AssistantReasoning | SessionIdle | SessionError


@dataclass(frozen=True, slots=True)
class ReviewSuccess:
    """Run completed; ``text`` is the accumulated assistant output."""

    text: str


@dataclass(frozen=True, slots=True)
class ReviewFailure:
    """Run failed with a session error or timeout."""

    message: str
    status_code: int | None = None
    stack: str | None = None

    def to_error(self) -> ReviewSessionError:
        """Build the exception raised to callers for this failure."""
        return ReviewSessionError(self.message, status_code=self.status_code, stack=self.stack)


SessionOutcome = ReviewSuccess | ReviewFailure


def format_failure_message(
    message: str,
    *,
    status_code: int | None = None,
    stack: str | None = None,
) -> str:
    """Render the caller-facing text for a failed session."""
    text = FAILURE_MESSAGE_PREFIX
    if status_code is not None:
        text += f" [Status Code {status_code}]"
    text += f": {message}."
    if stack:
        text += f"\n{stack}"
    return text


class ReviewSessionError(RuntimeError):
    """Raised when the assistant session ends with an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        stack: str | None = None,
    ) -> None:
        super().__init__(format_failure_message(message, status_code=status_code, stack=stack))
        self.message = message
        self.status_code = status_code
        self.stack = stack


def _event_type_name(event: Any) -> str:
    """Return the wire name of an SDK event type (enum or plain string)."""
    event_type = getattr(event, "type", None)
    return str(getattr(event_type, "value", event_type))


def _optional_int(value: object) -> int | None:
    """Coerce an optional status code from SDK payloads."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_runtime_event(event: Any) -> SessionEvent | None:
    """Translate an assistant runtime event into a ``SessionEvent``.

    Returns ``None`` for event kinds that do not affect the review output
    (tool calls, usage reports, deltas and so on).
    """
    event_type = _event_type_name(event)
    data = getattr(event, "data", None)

    if event_type == ASSISTANT_MESSAGE_EVENT:
        return AssistantMessage(text=getattr(data, "content", None) or "")
    if event_type == ASSISTANT_REASONING_EVENT:
        return AssistantReasoning(text=getattr(data, "content", None) or "")
    if event_type == SESSION_IDLE_EVENT:
        return SessionIdle()
    if event_type == SESSION_ERROR_EVENT:
        message = getattr(data, "message", None) or "Unknown session error"
        return SessionError(
            message=str(message),
            status_code=_optional_int(getattr(data, "status_code", None)),
            stack=getattr(data, "stack", None) or None,
        )
    return None

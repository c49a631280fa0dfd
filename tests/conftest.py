"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import os
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (assistant runtime or Azure DevOps access).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


def runtime_event(event_type: str, **data: Any) -> SimpleNamespace:
    """Build an object shaped like a Copilot SDK session event."""
    return SimpleNamespace(type=SimpleNamespace(value=event_type), data=SimpleNamespace(**data))


class FakeRuntimeSession:
    """Session that replays scripted events to its handlers when a prompt is sent."""

    def __init__(
        self,
        events: list[Any],
        *,
        send_error: Exception | None = None,
        destroy_error: Exception | None = None,
    ) -> None:
        self.events = list(events)
        self.send_error = send_error
        self.destroy_error = destroy_error
        self.handlers: list[Callable[[Any], None]] = []
        self.sent: list[dict[str, Any]] = []
        self.handlers_at_send: int | None = None
        self.destroy_calls = 0

    def on(self, handler: Callable[[Any], None]) -> Callable[[], None]:
        self.handlers.append(handler)

        def unsubscribe() -> None:
            self.handlers.remove(handler)

        return unsubscribe

    async def send(self, options: dict[str, Any]) -> str:
        self.sent.append(options)
        self.handlers_at_send = len(self.handlers)
        if self.send_error is not None:
            raise self.send_error
        for event in self.events:
            for handler in list(self.handlers):
                handler(event)
        return "message-1"

    async def destroy(self) -> None:
        self.destroy_calls += 1
        if self.destroy_error is not None:
            raise self.destroy_error


class FakeRuntimeClient:
    """Client that hands out one scripted session."""

    def __init__(
        self,
        session: FakeRuntimeSession,
        *,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> None:
        self.session = session
        self.start_error = start_error
        self.stop_error = stop_error
        self.start_calls = 0
        self.stop_calls = 0
        self.session_configs: list[dict[str, Any]] = []

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error

    async def create_session(self, config: dict[str, Any]) -> FakeRuntimeSession:
        self.session_configs.append(config)
        return self.session

    async def stop(self) -> list[Exception]:
        self.stop_calls += 1
        if self.stop_error is not None:
            raise self.stop_error
        return []


@pytest.fixture
def make_runtime() -> Callable[..., FakeRuntimeClient]:
    """Return a builder for fake runtime clients with scripted events."""

    def _build(
        events: list[Any],
        *,
        send_error: Exception | None = None,
        start_error: Exception | None = None,
        destroy_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> FakeRuntimeClient:
        session = FakeRuntimeSession(events, send_error=send_error, destroy_error=destroy_error)
        return FakeRuntimeClient(session, start_error=start_error, stop_error=stop_error)

    return _build


@pytest.fixture
def event() -> Callable[..., SimpleNamespace]:
    """Return the runtime event builder."""
    return runtime_event

"""Assistant session orchestration for one pull request review.

A run connects to the assistant runtime, opens one session with the review
system prompt and tool providers, sends a single prompt, and waits for the
first terminal event. Message and reasoning text is accumulated in arrival
order; ``session.idle`` resolves the run with that text and ``session.error``
resolves it with a failure. The session and the runtime connection are closed
on every path.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, assert_never

from copilot import CopilotClient

from src.observability import ReviewTelemetry
from src.schema import AgentOptions, ReviewRequest
from src.session_events import (
    AssistantMessage,
    AssistantReasoning,
    ReviewFailure,
    ReviewSuccess,
    SessionError,
    SessionIdle,
    SessionOutcome,
    parse_runtime_event,
)
from src.tool_providers import ToolProviderSpec, to_mcp_server_configs


PermissionPolicy = Callable[[Any, Any], dict[str, str]]


def approve_all_permissions(request: Any, invocation: Any) -> dict[str, str]:
    """Approve every permission request.

    Reviews run unattended, so this policy trusts all tool invocations.
    """
    return {"kind": "approved"}


def deny_all_permissions(request: Any, invocation: Any) -> dict[str, str]:
    """Deny every permission request."""
    return {"kind": "denied-by-rules"}


class RuntimeSession(Protocol):
    """Session surface used by the orchestrator."""

    def on(self, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register an event handler and return its unsubscribe callable."""

    async def send(self, options: dict[str, Any]) -> Any:
        """Send one user message."""

    async def destroy(self) -> None:
        """Close the session."""


class RuntimeClient(Protocol):
    """Connection surface used by the orchestrator."""

    async def start(self) -> None:
        """Open the connection to the runtime."""

    async def create_session(self, config: dict[str, Any]) -> RuntimeSession:
        """Create a session from a runtime session config."""

    async def stop(self) -> Any:
        """Close the connection."""


RuntimeClientFactory = Callable[[AgentOptions], RuntimeClient]


def create_copilot_client(options: AgentOptions) -> RuntimeClient:
    """Build a Copilot SDK client for an already running headless CLI server."""
    # cli_url makes the SDK connect over TCP instead of spawning a stdio CLI.
    return CopilotClient(
        {
            "cli_url": options.cli_url,
            "log_level": options.runtime_log_level,
        }
    )


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Settings for the single session of a review run."""

    model: str
    system_prompt: str = field(repr=False)
    tool_providers: dict[str, ToolProviderSpec] = field(repr=False)
    permission_policy: PermissionPolicy = approve_all_permissions
    append_system_prompt: bool = True
    streaming: bool = False

    def to_runtime_config(self) -> dict[str, Any]:
        """Render the config in the shape ``create_session`` expects."""
        return {
            "model": self.model,
            "streaming": self.streaming,
            "system_message": {
                "mode": "append" if self.append_system_prompt else "replace",
                "content": self.system_prompt,
            },
            "on_permission_request": self.permission_policy,
            "mcp_servers": to_mcp_server_configs(self.tool_providers),
        }


def build_review_prompt(request: ReviewRequest) -> str:
    """Build the user prompt sent to the session."""
    return (
        f"Review the pull request number {request.pull_request_id} in Azure DevOps "
        f"project {request.project_name} for the repository {request.repository_name}"
    )


class ReviewCompletion:
    """Accumulates session output and resolves once on the first terminal event."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        telemetry: ReviewTelemetry,
        logger: logging.Logger,
    ) -> None:
        self._loop = loop
        self._future: asyncio.Future[SessionOutcome] = loop.create_future()
        self._lines: list[str] = []
        self._telemetry = telemetry
        self._logger = logger

    def dispatch(self, raw_event: Any) -> None:
        """Runtime event handler; may be called from a runtime reader thread."""
        self._loop.call_soon_threadsafe(self.process, raw_event)

    def process(self, raw_event: Any) -> None:
        """Apply one runtime event on the owning event loop."""
        event = parse_runtime_event(raw_event)
        if event is None:
            return
        if self._future.done():
            self._telemetry.ignored_events += 1
            self._logger.debug("Ignoring %s after the session resolved.", type(event).__name__)
            return

        if isinstance(event, AssistantMessage):
            self._telemetry.assistant_messages += 1
            self._lines.append(event.text + "\n")
        elif isinstance(event, AssistantReasoning):
            self._telemetry.reasoning_messages += 1
            self._lines.append(event.text + "\n")
        elif isinstance(event, SessionIdle):
            self._future.set_result(ReviewSuccess(text="".join(self._lines)))
        elif isinstance(event, SessionError):
            self._logger.debug("Session error event received (status=%s).", event.status_code)
            self._future.set_result(
                ReviewFailure(
                    message=event.message,
                    status_code=event.status_code,
                    stack=event.stack,
                )
            )
        else:
            assert_never(event)

    async def wait(self, timeout_seconds: float) -> SessionOutcome:
        """Wait for the terminal outcome, resolving a failure on timeout."""
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout=timeout_seconds)
        except TimeoutError:
            if self._future.done():
                return self._future.result()
            outcome = ReviewFailure(
                message=(
                    f"Timed out after {timeout_seconds:g} seconds waiting for the "
                    "session to become idle"
                )
            )
            self._future.set_result(outcome)
            return outcome


class ReviewSessionOrchestrator:
    """Drive one assistant session per review request."""

    def __init__(
        self,
        options: AgentOptions,
        *,
        client_factory: RuntimeClientFactory = create_copilot_client,
        logger: logging.Logger | None = None,
    ) -> None:
        self._options = options
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)

    async def run(self, request: ReviewRequest, config: SessionConfig) -> str:
        """Run the review and return the accumulated assistant text.

        Raises:
            ReviewSessionError: the session ended with an error event or timed out.
        """
        outcome = await self.run_session(request, config)
        if isinstance(outcome, ReviewFailure):
            raise outcome.to_error()
        return outcome.text

    async def run_session(self, request: ReviewRequest, config: SessionConfig) -> SessionOutcome:
        """Run the review and return its outcome without raising on session failure."""
        telemetry = ReviewTelemetry(
            run_id=uuid.uuid4().hex[:16],
            pull_request_id=request.pull_request_id,
            model=config.model,
        )
        started_at = time.monotonic()

        client = self._client_factory(self._options)
        self._logger.info("Connecting to assistant runtime at %s.", self._options.cli_url)
        await client.start()
        try:
            outcome = await self._run_with_client(client, request, config, telemetry)
        finally:
            await self._close(client.stop, "runtime connection", telemetry)

        telemetry.duration_seconds = time.monotonic() - started_at
        telemetry.outcome = "success" if isinstance(outcome, ReviewSuccess) else "failure"
        if telemetry.ignored_events:
            telemetry.warnings.append(
                f"{telemetry.ignored_events} event(s) arrived after the session resolved"
            )
        telemetry.log_summary(self._logger)
        return outcome

    async def _run_with_client(
        self,
        client: RuntimeClient,
        request: ReviewRequest,
        config: SessionConfig,
        telemetry: ReviewTelemetry,
    ) -> SessionOutcome:
        """Open the session, send the prompt, and wait for completion."""
        self._logger.info(
            "Creating session with model %s and tool providers %s.",
            config.model,
            ", ".join(sorted(config.tool_providers)),
        )
        session = await client.create_session(config.to_runtime_config())
        try:
            completion = ReviewCompletion(
                asyncio.get_running_loop(),
                telemetry=telemetry,
                logger=self._logger,
            )
            unsubscribe = session.on(completion.dispatch)
            try:
                self._logger.info("Requesting review of pull request %s.", request.pull_request_id)
                await session.send({"prompt": build_review_prompt(request)})
                return await completion.wait(self._options.timeout_seconds)
            finally:
                unsubscribe()
        finally:
            await self._close(session.destroy, "session", telemetry)

    async def _close(
        self,
        close: Callable[[], Awaitable[Any]],
        resource: str,
        telemetry: ReviewTelemetry,
    ) -> None:
        """Release a runtime resource without replacing the run's result or error.

        Close failures are logged and recorded as run warnings. The error already
        in flight, or the outcome already resolved, is what reaches the caller.
        """
        try:
            await close()
        except Exception:
            self._logger.warning("Failed to close the assistant %s.", resource, exc_info=True)
            telemetry.warnings.append(f"closing the assistant {resource} failed")
        else:
            self._logger.debug("Assistant %s closed.", resource)

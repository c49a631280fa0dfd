"""Pull request review entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

from src.platform_policy import resolve_shell_invocation
from src.schema import AgentOptions, ReviewRequest
from src.session import (
    PermissionPolicy,
    ReviewSessionOrchestrator,
    SessionConfig,
    approve_all_permissions,
)
from src.tool_providers import build_tool_providers

DEFAULT_SYSTEM_PROMPT_PATH = Path("pullreview.prompt")

logger = logging.getLogger(__name__)


class AgentConfigurationError(ValueError):
    """Raised when the agent is constructed without required settings."""


def load_system_prompt(path: Path) -> str:
    """Read the system prompt text; I/O errors propagate to the caller."""
    return path.read_text(encoding="utf-8")


class PullRequestAgent:
    """Review one Azure DevOps pull request through an assistant session."""

    def __init__(
        self,
        ado_token: str | None,
        options: AgentOptions | None = None,
        *,
        system_prompt_path: Path = DEFAULT_SYSTEM_PROMPT_PATH,
        permission_policy: PermissionPolicy = approve_all_permissions,
        orchestrator: ReviewSessionOrchestrator | None = None,
    ) -> None:
        if not ado_token:
            raise AgentConfigurationError("ado_token cannot be empty (ADO_MCP_AUTH_TOKEN).")
        self._ado_token = ado_token
        self._options = options or AgentOptions()
        try:
            resolve_shell_invocation(self._options.os_family).quote(ado_token)
        except ValueError as error:
            raise AgentConfigurationError(
                f"ado_token cannot be passed to the {self._options.os_family} shell: {error}"
            ) from error
        self._system_prompt_path = system_prompt_path
        self._permission_policy = permission_policy
        self._orchestrator = orchestrator or ReviewSessionOrchestrator(self._options)

    def build_session_config(self, request: ReviewRequest, system_prompt: str) -> SessionConfig:
        """Assemble the session config for one review request."""
        shell = resolve_shell_invocation(self._options.os_family)
        return SessionConfig(
            model=self._options.model,
            system_prompt=system_prompt,
            tool_providers=build_tool_providers(
                request.organization_name,
                self._ado_token,
                shell,
            ),
            permission_policy=self._permission_policy,
        )

    async def run(
        self,
        pull_request_id: int,
        organization_name: str,
        project_name: str,
        repository_name: str,
    ) -> str:
        """Review the pull request and return the assistant's output text.

        Raises:
            ReviewSessionError: the assistant session ended with an error.
            OSError: the system prompt file could not be read.
        """
        request = ReviewRequest(
            pull_request_id=pull_request_id,
            organization_name=organization_name,
            project_name=project_name,
            repository_name=repository_name,
        )
        # Loaded per call; a process reviews a single pull request.
        system_prompt = load_system_prompt(self._system_prompt_path)
        logger.debug("Loaded system prompt from %s.", self._system_prompt_path)
        config = self.build_session_config(request, system_prompt)
        return await self._orchestrator.run(request, config)

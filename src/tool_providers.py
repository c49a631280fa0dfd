"""Tool provider registry attached to each review session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, assert_never

from src.platform_policy import ShellInvocation

REPO_TOOLS_PROVIDER_NAME = "repo-tools"
DOCS_TOOLS_PROVIDER_NAME = "docs-tools"
ADO_MCP_AUTH_TOKEN_ENV_VAR = "ADO_MCP_AUTH_TOKEN"
ADO_MCP_PACKAGE = "@azure-devops/mcp@latest"
ADO_MCP_DOMAINS = ("core", "repositories", "search", "work", "work-items")
DOCS_MCP_URL = "https://learn.microsoft.com/api/mcp"
ALL_TOOLS = ("*",)


@dataclass(frozen=True, slots=True)
class LocalToolProvider:
    """Tool provider spawned as a local process by the assistant runtime.

    ``args`` and ``env`` embed the credential, so both are left out of ``repr``.
    """

    command: str
    args: tuple[str, ...] = field(repr=False)
    env: dict[str, str] = field(repr=False)
    tools: tuple[str, ...] = ALL_TOOLS
    kind: Literal["local"] = "local"


@dataclass(frozen=True, slots=True)
class RemoteToolProvider:
    """Tool provider reached over HTTP."""

    url: str
    tools: tuple[str, ...] = ALL_TOOLS
    kind: Literal["remote"] = "remote"


ToolProviderSpec = LocalToolProvider | RemoteToolProvider


def build_ado_mcp_command(organization_name: str) -> str:
    """Build the package-runner command that starts the Azure DevOps MCP server."""
    domains = " ".join(ADO_MCP_DOMAINS)
    return (
        f"npx -y {ADO_MCP_PACKAGE} {organization_name} "
        f"--domains {domains} --authentication envvar"
    )


def build_tool_providers(
    organization_name: str,
    credential_token: str,
    shell: ShellInvocation,
) -> dict[str, ToolProviderSpec]:
    """Build the repository and documentation tool providers for one run.

    The organization name and the credential are quoted for ``shell`` before
    they are placed on its command line.
    """
    command = build_ado_mcp_command(shell.quote(organization_name))
    repo_tools = LocalToolProvider(
        command=shell.executable,
        args=tuple(
            shell.arguments(
                env_var=ADO_MCP_AUTH_TOKEN_ENV_VAR,
                value=credential_token,
                command=command,
            )
        ),
        env={ADO_MCP_AUTH_TOKEN_ENV_VAR: credential_token},
    )
    docs_tools = RemoteToolProvider(url=DOCS_MCP_URL)
    return {
        REPO_TOOLS_PROVIDER_NAME: repo_tools,
        DOCS_TOOLS_PROVIDER_NAME: docs_tools,
    }


def to_mcp_server_config(spec: ToolProviderSpec) -> dict[str, Any]:
    """Translate a provider spec into the runtime's MCP server config shape."""
    if isinstance(spec, LocalToolProvider):
        return {
            "type": "local",
            "command": spec.command,
            "args": list(spec.args),
            "env": dict(spec.env),
            "tools": list(spec.tools),
        }
    if isinstance(spec, RemoteToolProvider):
        return {
            "type": "http",
            "url": spec.url,
            "tools": list(spec.tools),
        }
    assert_never(spec)


def to_mcp_server_configs(providers: dict[str, ToolProviderSpec]) -> dict[str, dict[str, Any]]:
    """Translate every provider in a registry mapping."""
    return {name: to_mcp_server_config(spec) for name, spec in providers.items()}

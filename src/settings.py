"""Environment-driven configuration for review runs."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from src.ado_client import AzureDevOpsAuthError
from src.platform_policy import OsFamily
from src.schema import AgentOptions

ADO_TOKEN_ENV_VARS = ("ADO_MCP_AUTH_TOKEN", "AZURE_DEVOPS_TOKEN")
RUNTIME_HOST_ENV_VAR = "COPILOT_CLI_HOST"
RUNTIME_PORT_ENV_VAR = "COPILOT_CLI_PORT"
MODEL_ENV_VAR = "COPILOT_MODEL"
RUNTIME_OS_ENV_VAR = "COPILOT_CLI_OS"
TIMEOUT_ENV_VAR = "REVIEW_TIMEOUT_SECONDS"


def load_env_file() -> None:
    """Load ``.env`` from the working directory without overriding the shell."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)


def get_ado_token_with_source(explicit_token: str | None = None) -> tuple[str, str]:
    """Return the Azure DevOps token and where it came from."""
    if explicit_token:
        return explicit_token, "--ado-token"

    load_env_file()
    for env_var in ADO_TOKEN_ENV_VARS:
        value = os.getenv(env_var)
        if value:
            return value, env_var

    names = " or ".join(ADO_TOKEN_ENV_VARS)
    raise AzureDevOpsAuthError(f"Missing Azure DevOps token. Pass --ado-token or set {names}.")


def _env_int(name: str) -> int | None:
    """Read an optional integer environment variable."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer, got '{value}'.") from error


def _env_float(name: str) -> float | None:
    """Read an optional float environment variable."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"{name} must be a number, got '{value}'.") from error


def _env_os_family(name: str) -> OsFamily | None:
    """Read an optional OS family environment variable."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return OsFamily(value.strip().lower())
    except ValueError as error:
        choices = ", ".join(family.value for family in OsFamily)
        raise ValueError(f"{name} must be one of {choices}, got '{value}'.") from error


def load_agent_options(
    *,
    host: str | None = None,
    port: int | None = None,
    os_family: OsFamily | None = None,
    model: str | None = None,
    timeout_seconds: float | None = None,
) -> AgentOptions:
    """Build agent options from explicit overrides, then environment, then defaults."""
    load_env_file()
    values: dict[str, object] = {
        "host": host or os.getenv(RUNTIME_HOST_ENV_VAR) or None,
        "port": port if port is not None else _env_int(RUNTIME_PORT_ENV_VAR),
        "os_family": os_family or _env_os_family(RUNTIME_OS_ENV_VAR),
        "model": model or os.getenv(MODEL_ENV_VAR) or None,
        "timeout_seconds": (
            timeout_seconds if timeout_seconds is not None else _env_float(TIMEOUT_ENV_VAR)
        ),
    }
    return AgentOptions(**{key: value for key, value in values.items() if value is not None})

"""Configuration and request value objects for review runs."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.platform_policy import OsFamily

DEFAULT_RUNTIME_HOST = "localhost"
DEFAULT_RUNTIME_PORT = 4321
DEFAULT_MODEL = "claude-sonnet-4.5"
DEFAULT_TIMEOUT_SECONDS = 1800.0
DEFAULT_RUNTIME_LOG_LEVEL = "error"
ORGANIZATION_NAME_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


class AgentOptions(BaseModel):
    """Assistant runtime connection settings, fixed for one process."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(default=DEFAULT_RUNTIME_HOST, min_length=1)
    port: int = Field(default=DEFAULT_RUNTIME_PORT, ge=1, le=65535)
    os_family: OsFamily = OsFamily.POSIX
    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    runtime_log_level: str = Field(default=DEFAULT_RUNTIME_LOG_LEVEL, min_length=1)

    @property
    def cli_url(self) -> str:
        """Return the ``host:port`` address of the assistant runtime."""
        return f"{self.host}:{self.port}"


class ReviewRequest(BaseModel):
    """Pull request targeted by one review run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    pull_request_id: int = Field(ge=1)
    organization_name: str = Field(min_length=1)
    project_name: str = Field(min_length=1)
    repository_name: str = Field(min_length=1)

    @field_validator("organization_name", "project_name", "repository_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Reject names that are blank after trimming."""
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank.")
        return stripped

    @field_validator("organization_name")
    @classmethod
    def validate_organization_name(cls, value: str) -> str:
        """Restrict the organization to characters no launch shell interprets.

        The organization is placed on the tool provider's shell command line.
        """
        if not ORGANIZATION_NAME_PATTERN.fullmatch(value):
            raise ValueError(
                "organization name may only contain letters, digits, '.', '_' and '-'."
            )
        return value

"""Azure DevOps REST helpers used to validate credentials and targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

ADO_BASE_URL = "https://dev.azure.com"
ADO_API_VERSION = "7.1"


class AzureDevOpsAuthError(RuntimeError):
    """Raised when required Azure DevOps authentication is missing."""


class AzureDevOpsInputError(ValueError):
    """Raised when organization, project, repository or PR input is invalid."""


class AzureDevOpsApiError(RuntimeError):
    """Raised when an Azure DevOps API request fails."""

    def __init__(self, message: str, *, status_code: int, endpoint: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


@dataclass(frozen=True, slots=True)
class PullRequestSummary:
    """Pull request fields reported by the auth check."""

    pull_request_id: int
    title: str
    status: str
    created_by: str
    source_ref: str
    target_ref: str


def validate_name(value: str, *, field_name: str) -> str:
    """Validate an organization, project or repository name."""
    stripped = value.strip()
    if not stripped or "/" in stripped:
        raise AzureDevOpsInputError(f"Invalid {field_name} '{value}'.")
    return stripped


def validate_pull_request_id(pull_request_id: int) -> int:
    """Validate and normalize pull request id input."""
    if pull_request_id <= 0:
        raise AzureDevOpsInputError(
            f"Invalid pull request id '{pull_request_id}'. Expected a positive integer."
        )
    return pull_request_id


def _ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a JSON payload is an object."""
    if not isinstance(value, dict):
        raise AzureDevOpsApiError(
            "Expected JSON object in Azure DevOps response.",
            status_code=500,
            endpoint=context,
        )
    return value


def _require_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str:
    """Read a required string field."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise AzureDevOpsApiError(
            f"Expected string field '{key}' in Azure DevOps response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_int(payload: dict[str, Any], *, key: str, endpoint: str) -> int:
    """Read a required integer field."""
    value = payload.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise AzureDevOpsApiError(
            f"Expected integer field '{key}' in Azure DevOps response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_object(payload: dict[str, Any], *, key: str, endpoint: str) -> dict[str, Any]:
    """Read a required object field."""
    return _ensure_mapping(payload.get(key), context=f"{endpoint}#{key}")


def _raise_http_error(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed error for a non-success Azure DevOps response."""
    if response.status_code in (401, 403):
        message = (
            f"Azure DevOps rejected the token with status {response.status_code} "
            f"for '{endpoint}'."
        )
    else:
        message = (
            f"Azure DevOps API request failed with status {response.status_code} "
            f"for '{endpoint}'."
        )
    raise AzureDevOpsApiError(message, status_code=response.status_code, endpoint=endpoint)


def _request_json(client: httpx.Client, endpoint: str) -> dict[str, Any]:
    """Perform a JSON GET request against the Azure DevOps API."""
    response = client.get(endpoint, params={"api-version": ADO_API_VERSION})
    # Unauthenticated requests are redirected to a sign-in page instead of failing.
    if response.is_redirect:
        raise AzureDevOpsApiError(
            f"Azure DevOps redirected '{endpoint}' to sign-in; the token was not accepted.",
            status_code=response.status_code,
            endpoint=endpoint,
        )
    if response.status_code >= 400:
        _raise_http_error(response, endpoint)
    try:
        payload = response.json()
    except ValueError as error:
        raise AzureDevOpsApiError(
            "Azure DevOps response was not valid JSON.",
            status_code=response.status_code,
            endpoint=endpoint,
        ) from error
    return _ensure_mapping(payload, context=endpoint)


def fetch_authenticated_user(*, client: httpx.Client) -> str:
    """Fetch the display name of the identity the token authenticates as."""
    endpoint = "/_apis/connectionData"
    payload = _request_json(client, endpoint)
    user = _require_object(payload, key="authenticatedUser", endpoint=endpoint)
    display_name = user.get("providerDisplayName") or user.get("customDisplayName")
    if not isinstance(display_name, str) or not display_name:
        raise AzureDevOpsApiError(
            "Azure DevOps did not report an authenticated user.",
            status_code=500,
            endpoint=endpoint,
        )
    return display_name


def fetch_pull_request(
    *,
    client: httpx.Client,
    project_name: str,
    repository_name: str,
    pull_request_id: int,
) -> PullRequestSummary:
    """Fetch one pull request to confirm the token can read it."""
    project = quote(validate_name(project_name, field_name="project name"), safe="")
    repository = quote(validate_name(repository_name, field_name="repository name"), safe="")
    normalized_id = validate_pull_request_id(pull_request_id)
    endpoint = f"/{project}/_apis/git/repositories/{repository}/pullrequests/{normalized_id}"

    payload = _request_json(client, endpoint)
    created_by = _require_object(payload, key="createdBy", endpoint=endpoint)
    return PullRequestSummary(
        pull_request_id=_require_int(payload, key="pullRequestId", endpoint=endpoint),
        title=_require_str(payload, key="title", endpoint=endpoint),
        status=_require_str(payload, key="status", endpoint=endpoint),
        created_by=_require_str(created_by, key="displayName", endpoint=endpoint),
        source_ref=_require_str(payload, key="sourceRefName", endpoint=endpoint),
        target_ref=_require_str(payload, key="targetRefName", endpoint=endpoint),
    )


def build_ado_client(
    token: str,
    organization_name: str,
    timeout_seconds: int = 20,
    *,
    trust_env: bool = True,
) -> httpx.Client:
    """Build an authenticated Azure DevOps HTTP client scoped to an organization."""
    if not token:
        raise AzureDevOpsAuthError("Missing Azure DevOps token.")
    organization = quote(validate_name(organization_name, field_name="organization name"), safe="")
    headers = {
        "Accept": "application/json",
        "Authorization": f"Bearer {token}",
    }
    return httpx.Client(
        base_url=f"{ADO_BASE_URL}/{organization}",
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )

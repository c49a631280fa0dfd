"""Typer CLI for the Azure DevOps pull request review agent."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import httpx
import typer
from pydantic import ValidationError

from src.ado_client import (
    AzureDevOpsApiError,
    AzureDevOpsAuthError,
    AzureDevOpsInputError,
    build_ado_client,
    fetch_authenticated_user,
    fetch_pull_request,
)
from src.agent import DEFAULT_SYSTEM_PROMPT_PATH, AgentConfigurationError, PullRequestAgent
from src.observability import configure_logging
from src.output import write_review_output
from src.platform_policy import OsFamily
from src.session_events import ReviewSessionError
from src.settings import get_ado_token_with_source, load_agent_options

app = typer.Typer(
    help=(
        "A pull request agent for Azure DevOps. It reviews a pull request with a focus on "
        "security, performance, and maintainability."
    )
)

TOKEN_HELP = (
    "The token to use for authentication. To use your own identity locally: "
    "az account get-access-token --resource 499b84ac-1321-427f-aa17-267ca6975798"
)


@app.command("review")
def review_command(
    pull_request_id: Annotated[
        int, typer.Option("--pull-request-id", "-id", help="The ID of the pull request to review.")
    ],
    organization_name: Annotated[
        str,
        typer.Option("--organization-name", "-o", help="The name of the Azure DevOps organization."),
    ],
    project_name: Annotated[
        str, typer.Option("--project-name", "-p", help="The name of the Azure DevOps project.")
    ],
    repository_name: Annotated[
        str,
        typer.Option("--repository-name", "-r", help="The name of the Azure DevOps repository."),
    ],
    ado_token: Annotated[
        str | None, typer.Option("--ado-token", "-at", help=TOKEN_HELP, show_default=False)
    ] = None,
    save_output: Annotated[
        bool, typer.Option(help="Save the agent output to pull_request_<id>_review.md.")
    ] = False,
    output_dir: Annotated[
        Path, typer.Option(help="Directory for saved output.", file_okay=False)
    ] = Path("."),
    prompt_file: Annotated[
        Path, typer.Option(help="System prompt file.", dir_okay=False)
    ] = DEFAULT_SYSTEM_PROMPT_PATH,
    host: Annotated[str | None, typer.Option(help="Assistant runtime host.")] = None,
    port: Annotated[int | None, typer.Option(help="Assistant runtime port.")] = None,
    model: Annotated[str | None, typer.Option(help="Model used for the review.")] = None,
    os_family: Annotated[
        OsFamily | None,
        typer.Option("--os", help="OS family of the host running the assistant runtime."),
    ] = None,
    timeout_seconds: Annotated[
        float | None, typer.Option(help="Maximum time to wait for the review to finish.")
    ] = None,
    verbose: Annotated[bool, typer.Option(help="Log progress to stderr.")] = False,
) -> None:
    """Review a pull request and print the assistant output."""
    configure_logging(logging.INFO if verbose else logging.WARNING)

    try:
        token, _source = get_ado_token_with_source(ado_token)
    except AzureDevOpsAuthError as error:
        typer.echo(f"Review failed: {error}", err=True)
        raise typer.Exit(code=1) from error

    try:
        options = load_agent_options(
            host=host,
            port=port,
            os_family=os_family,
            model=model,
            timeout_seconds=timeout_seconds,
        )
        agent = PullRequestAgent(token, options, system_prompt_path=prompt_file)
    except (AgentConfigurationError, ValueError) as error:
        typer.echo(f"Review failed: invalid configuration ({error}).", err=True)
        raise typer.Exit(code=1) from error

    try:
        response = asyncio.run(
            agent.run(pull_request_id, organization_name, project_name, repository_name)
        )
    except ValidationError as error:
        typer.echo(f"Review failed: invalid pull request target ({error}).", err=True)
        raise typer.Exit(code=1) from error
    except ReviewSessionError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error

    typer.echo(response)

    if save_output:
        output_path = write_review_output(pull_request_id, response, output_dir=output_dir)
        typer.echo(f"Saved review output to {output_path}.", err=True)


@app.command("auth-check")
def auth_check_command(
    organization_name: Annotated[
        str,
        typer.Option("--organization-name", "-o", help="The name of the Azure DevOps organization."),
    ],
    ado_token: Annotated[
        str | None, typer.Option("--ado-token", "-at", help=TOKEN_HELP, show_default=False)
    ] = None,
    project_name: Annotated[
        str | None, typer.Option("--project-name", "-p", help="Optional project for a PR check.")
    ] = None,
    repository_name: Annotated[
        str | None,
        typer.Option("--repository-name", "-r", help="Optional repository for a PR check."),
    ] = None,
    pull_request_id: Annotated[
        int | None, typer.Option("--pull-request-id", "-id", help="Optional PR for a PR check.")
    ] = None,
    timeout_seconds: Annotated[
        int, typer.Option(help="Azure DevOps API timeout in seconds for the validation call.")
    ] = 20,
    trust_env: Annotated[
        bool,
        typer.Option(
            "--trust-env/--no-trust-env",
            help="Use proxy/SSL environment variables from the current shell.",
        ),
    ] = True,
) -> None:
    """Validate the Azure DevOps token and optional pull request read access."""
    pr_target = (project_name, repository_name, pull_request_id)
    if any(value is not None for value in pr_target) and not all(
        value is not None for value in pr_target
    ):
        raise typer.BadParameter(
            "Provide --project-name, --repository-name and --pull-request-id together, or none."
        )

    try:
        token, token_source = get_ado_token_with_source(ado_token)
    except AzureDevOpsAuthError as error:
        typer.echo(f"Azure DevOps auth check failed: {error}")
        raise typer.Exit(code=1) from error

    typer.echo(f"Token detected in {token_source}.")

    try:
        with build_ado_client(
            token,
            organization_name,
            timeout_seconds=timeout_seconds,
            trust_env=trust_env,
        ) as client:
            user = fetch_authenticated_user(client=client)
            typer.echo(f"Authenticated as Azure DevOps user '{user}'.")

            if (
                project_name is not None
                and repository_name is not None
                and pull_request_id is not None
            ):
                summary = fetch_pull_request(
                    client=client,
                    project_name=project_name,
                    repository_name=repository_name,
                    pull_request_id=pull_request_id,
                )
                typer.echo(
                    f"Pull request access check passed for {project_name}/{repository_name}"
                    f"#{summary.pull_request_id} ({summary.status})."
                )
    except AzureDevOpsInputError as error:
        typer.echo(f"Azure DevOps auth check failed: {error}")
        raise typer.Exit(code=1) from error
    except AzureDevOpsApiError as error:
        typer.echo(
            "Azure DevOps auth check failed: "
            f"status={error.status_code} endpoint={error.endpoint}."
        )
        raise typer.Exit(code=1) from error
    except httpx.HTTPError as error:
        typer.echo(f"Azure DevOps auth check failed: network error ({error}).")
        raise typer.Exit(code=1) from error

    typer.echo("Azure DevOps token setup is valid.")

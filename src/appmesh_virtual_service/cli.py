"""App Mesh virtual service CLI (avs).

Runs the same reconciliation as the GitHub Action, from a terminal.

Usage:
    avs run                                   # Run as a GitHub Action step
    avs create -m my-mesh -n svc.local        # Find or create
    avs delete -m my-mesh -n svc.local        # Delete and wait
    avs describe -m my-mesh -n svc.local      # Show classified state
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from .client import LoggingObserver, MeshClient
from .config import (
    DEFAULT_WAITER_MAX_DELAY_SECONDS,
    DEFAULT_WAITER_MAX_WAIT_SECONDS,
    DEFAULT_WAITER_MIN_DELAY_SECONDS,
    ClientConfig,
    ConfigurationError,
    LogFormat,
    WaiterConfig,
)
from .errors import ActionError, InputError, format_error
from .main import main as action_main
from .main import setup_logging
from .pipeline import build_parameters, extract_arn
from .reconciler import delete_and_wait, find_or_create
from .spec_loader import load_spec_file, parse_json_input
from .state import describe_state


def identity_options(func: Any) -> Any:
    """Options shared by every command that addresses a virtual service."""
    func = click.option(
        "--region", "-r", envvar="AWS_REGION", default=None, help="AWS region of the mesh"
    )(func)
    func = click.option("--mesh-owner", "-o", default=None, help="Account ID owning the mesh")(
        func
    )
    func = click.option("--name", "-n", required=True, help="Virtual service name")(func)
    func = click.option("--mesh-name", "-m", required=True, help="Mesh name")(func)
    return func


def make_client(region: str | None) -> MeshClient:
    try:
        config = ClientConfig(region=region)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    return MeshClient(config, observer=LoggingObserver())


def echo_result(response: dict[str, Any]) -> None:
    """Print the ARN followed by the full response."""
    try:
        click.echo(f"ARN: {extract_arn(response)}")
    except ActionError as e:
        raise click.ClickException(format_error(e)) from e
    click.echo(json.dumps(response, indent=2, default=str))


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="avs")
@click.option("--verbose", "-v", is_flag=True, help="Log every API request")
def cli(verbose: bool) -> None:
    """App Mesh virtual service CLI (avs).

    \b
    Quick Start:
        avs create -m my-mesh -n svc.local --spec '{"provider": {...}}'
        avs delete -m my-mesh -n svc.local
    """
    setup_logging(LogFormat.JSON, debug=verbose)


@cli.command()
def run() -> None:
    """Run as a GitHub Actions step, reading INPUT_* variables."""
    exit_code = asyncio.run(action_main())
    if exit_code != 0:
        raise SystemExit(exit_code)


@cli.command()
@identity_options
@click.option("--spec", "spec_json", default=None, help="Virtual service spec as JSON")
@click.option(
    "--spec-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Virtual service spec as a YAML or JSON file",
)
@click.option("--tags", "tags_json", default=None, help="Tags as JSON")
def create(
    mesh_name: str,
    name: str,
    mesh_owner: str | None,
    region: str | None,
    spec_json: str | None,
    spec_file: Path | None,
    tags_json: str | None,
) -> None:
    """Find the virtual service, or create it if it does not exist."""
    try:
        if spec_json and spec_file:
            raise InputError("--spec and --spec-file are mutually exclusive", field="spec")
        inputs: dict[str, Any] = {
            "action": "create",
            "meshName": mesh_name,
            "meshOwner": mesh_owner,
            "virtualServiceName": name,
        }
        if spec_json:
            inputs["spec"] = parse_json_input("spec", spec_json)
        elif spec_file:
            inputs["spec"] = load_spec_file(spec_file)
        if tags_json:
            inputs["tags"] = parse_json_input("tags", tags_json)
        parameters = build_parameters(inputs)

        response = asyncio.run(find_or_create(make_client(region), parameters))
    except ActionError as e:
        raise click.ClickException(format_error(e)) from e

    echo_result(response)


@cli.command()
@identity_options
@click.option(
    "--min-delay",
    type=float,
    default=DEFAULT_WAITER_MIN_DELAY_SECONDS,
    show_default=True,
    help="First delay between polls (seconds)",
)
@click.option(
    "--max-delay",
    type=float,
    default=DEFAULT_WAITER_MAX_DELAY_SECONDS,
    show_default=True,
    help="Maximum delay between polls (seconds)",
)
@click.option(
    "--max-wait",
    type=float,
    default=DEFAULT_WAITER_MAX_WAIT_SECONDS,
    show_default=True,
    help="Total time to wait for deletion (seconds)",
)
def delete(
    mesh_name: str,
    name: str,
    mesh_owner: str | None,
    region: str | None,
    min_delay: float,
    max_delay: float,
    max_wait: float,
) -> None:
    """Delete the virtual service and wait until it is gone."""
    try:
        waiter_config = WaiterConfig(
            min_delay_seconds=min_delay,
            max_delay_seconds=max_delay,
            max_wait_seconds=max_wait,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    try:
        parameters = build_parameters(
            {
                "action": "delete",
                "meshName": mesh_name,
                "meshOwner": mesh_owner,
                "virtualServiceName": name,
            }
        )
        response = asyncio.run(delete_and_wait(make_client(region), parameters, waiter_config))
    except ActionError as e:
        raise click.ClickException(format_error(e)) from e

    echo_result(response)


@cli.command()
@identity_options
def describe(mesh_name: str, name: str, mesh_owner: str | None, region: str | None) -> None:
    """Show the classified state of the virtual service."""
    try:
        parameters = build_parameters(
            {"meshName": mesh_name, "meshOwner": mesh_owner, "virtualServiceName": name}
        )
        observation = asyncio.run(describe_state(make_client(region), parameters))
    except ActionError as e:
        raise click.ClickException(format_error(e)) from e

    click.echo(f"{parameters.identity}: {observation.state.value}")
    if observation.response is not None:
        click.echo(json.dumps(observation.response, indent=2, default=str))


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

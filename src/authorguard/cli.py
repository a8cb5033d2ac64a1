"""
CLI entry point for authorguard.

This module provides the Typer-based command-line interface, used to
inspect the dispatch table and to try requests against fixture data.

Commands:
    stages      Show which policy operation runs at each lifecycle stage
    check       Run a request against a fixture store under the policy

Architecture Note:
    The CLI is intentionally thin - it loads files and delegates to the
    Gateway. The engine itself owns no CLI, wire or file format.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from authorguard import __version__
from authorguard.config import DEFAULT_CONFIG, GuardConfig, load_config
from authorguard.dispatch import PIPES, PolicyDispatcher
from authorguard.errors import AccessDeniedError, AuthorGuardError, StoreError
from authorguard.gateway import Gateway
from authorguard.policy import OwnershipPolicy
from authorguard.schema import load_request
from authorguard.store import InMemoryDocumentStore

# Exit codes
EXIT_DENIED = 1
EXIT_ERROR = 2

app = typer.Typer(
    name="authorguard",
    help="Enforce document ownership in front of a document store.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]authorguard[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    authorguard - document-ownership authorization filter.

    Non-privileged actors may only read, modify, delete or discover
    documents they authored.
    """
    pass


def _load_config_or_exit(config_path: Path | None) -> GuardConfig:
    if config_path is None:
        return DEFAULT_CONFIG
    try:
        return load_config(config_path)
    except AuthorGuardError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_ERROR) from e


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


def _output_json(output: dict[str, Any]) -> None:
    print(json.dumps(output, indent=2, default=str))


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


@app.command()
def stages(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a YAML configuration file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """
    Show the lifecycle dispatch table.
    """
    config = _load_config_or_exit(config_path)
    dispatcher = PolicyDispatcher(OwnershipPolicy(InMemoryDocumentStore(), config=config))

    table = Table(title="Lifecycle stages")
    table.add_column("Stage", style="cyan")
    table.add_column("Operation")
    table.add_column("Enabled", justify="center")

    for stage, operation in PIPES.items():
        enabled = dispatcher.has(stage)
        table.add_row(
            stage.value,
            operation.value,
            "[green]yes[/green]" if enabled else "[dim]no[/dim]",
        )

    console.print(table)


@app.command()
def check(
    request_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the request YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    store_path: Annotated[
        Path,
        typer.Option(
            "--store",
            "-s",
            help="Path to a YAML file of fixture documents.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a YAML configuration file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the outcome in JSON format.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log every policy decision.",
        ),
    ] = False,
) -> None:
    """
    Run a request against a fixture store under the ownership policy.

    Exits with code 1 when the policy denies the request and with code 2
    when the request cannot be evaluated.
    """
    _configure_logging(verbose)
    config = _load_config_or_exit(config_path)

    try:
        store = InMemoryDocumentStore.from_yaml(store_path)
        request = load_request(request_path)
    except (AuthorGuardError, ValidationError, ValueError, OSError) as e:
        err_console.print(f"[red]Error loading input: {e}[/red]")
        raise typer.Exit(EXIT_ERROR) from e

    gateway = Gateway(store, config=config)

    try:
        result = gateway.execute(request)
    except AccessDeniedError as e:
        if json_output:
            _output_json({"allowed": False, "error": e.to_dict()})
        else:
            console.print(f"[yellow]⊘ Denied[/yellow] {e.message}")
        raise typer.Exit(EXIT_DENIED) from e
    except StoreError as e:
        # Raised by the store, so the policy had already allowed the request
        if json_output:
            _output_json({"allowed": True, "error": e.to_dict()})
        else:
            console.print(f"[red]✗ Error[/red] {e}")
        raise typer.Exit(EXIT_ERROR) from e
    except AuthorGuardError as e:
        if json_output:
            _output_json({"allowed": False, "error": e.to_dict()})
        else:
            console.print(f"[red]✗ Error[/red] {e}")
        raise typer.Exit(EXIT_ERROR) from e
    except ValueError as e:
        # Query bodies outside what the fixture store can evaluate
        if json_output:
            _output_json({"error": {"error_type": type(e).__name__, "message": str(e)}})
        else:
            console.print(f"[red]✗ Error[/red] {e}")
        raise typer.Exit(EXIT_ERROR) from e

    payload = _to_jsonable(result)
    if json_output:
        _output_json({"allowed": True, "result": payload})
        return

    console.print(f"[green]✓ Allowed[/green] {request.target} for {request.actor.id}")
    console.print_json(json.dumps(payload, default=str))

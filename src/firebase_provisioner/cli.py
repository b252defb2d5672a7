"""Typer CLI for the Firebase provisioning service."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from firebase_provisioner.client.backend import DEFAULT_BACKEND_URL, ProvisioningClient
from firebase_provisioner.client.normalizer import (
    ParseError,
    normalize as normalize_text,
    parse_json,
    to_strict_json,
)
from firebase_provisioner.client.resolver import ConfigResolver, environment_config
from firebase_provisioner.client.store import DEFAULT_STORE_PATH, ClientStore
from firebase_provisioner.config.loader import load_service_config
from firebase_provisioner.config.models import ServiceConfig
from firebase_provisioner.models import ConfigSource, Failure, ProvisioningRequest
from firebase_provisioner.service.pipeline import ProvisioningService

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="fireprov", help="Firebase project provisioning")


def _load(config_path: str | None) -> ServiceConfig:
    if config_path is not None and not Path(config_path).exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    try:
        return load_service_config(config_path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid config:[/red] {exc}")
        raise typer.Exit(1) from exc


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    p = Path(path)
    if not p.exists():
        console.print(f"[red]File not found: {p}[/red]")
        raise typer.Exit(1)
    return p.read_text(encoding="utf-8")


@app.command()
def serve(
    config_path: str | None = typer.Option(None, "--config", help="Service YAML"),
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", help="Listen port"),
) -> None:
    """Run the provisioning HTTP service."""
    import uvicorn

    from firebase_provisioner.service.api import create_app

    config = _load(config_path)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.print(
        f"[green]Provisioning service[/green] on {bind_host}:{bind_port} "
        f"({config.environment.value})"
    )
    if not config.gcp.credential_configured:
        console.print(
            "[yellow]No service account configured; "
            "setup requests will fail with 'not-configured'[/yellow]"
        )
    logger.info(
        "service.starting",
        host=bind_host,
        port=bind_port,
        environment=config.environment.value,
        cors_origins=config.cors.allowed_origins,
    )
    uvicorn.run(create_app(config), host=bind_host, port=bind_port)


@app.command()
def provision(
    user_id: str = typer.Argument(..., help="Requester identifier"),
    name: str | None = typer.Option(None, "--name", help="Project display name"),
    config_path: str | None = typer.Option(None, "--config", help="Service YAML"),
) -> None:
    """Run the provisioning pipeline once and print the resulting config."""
    config = _load(config_path)
    service = ProvisioningService(config)
    request = ProvisioningRequest(requester_id=user_id, display_name=name or "")
    result = asyncio.run(service.provision(request))

    if isinstance(result, Failure):
        console.print(f"[red]Provisioning failed:[/red] {result.reason}")
        if result.detail:
            console.print(f"  [dim]{result.detail}[/dim]")
        raise typer.Exit(1)

    console.print(f"[green]Project created:[/green] {result.project_id}")
    for warning in result.warnings:
        console.print(f"  [yellow]warning[/yellow] {warning.step}: {warning.message}")
    console.print_json(json.dumps(result.config.to_dict()))


@app.command()
def verify(
    path: str = typer.Argument(..., help="File with a config object, or '-' for stdin"),
) -> None:
    """Check that a config has non-empty apiKey and projectId."""
    try:
        candidate = parse_json(to_strict_json(_read_text(path)))
    except ParseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    if not ProvisioningService.verify(candidate):
        console.print("[red]Invalid Firebase configuration[/red]")
        raise typer.Exit(1)
    console.print("[green]Configuration appears valid[/green]")


@app.command()
def normalize(
    path: str = typer.Argument(..., help="File with pasted config text, or '-'"),
    save: bool = typer.Option(False, "--save", help="Persist to the client store"),
    store_path: Path = typer.Option(DEFAULT_STORE_PATH, "--store", help="Store file"),
) -> None:
    """Turn pasted Firebase config text into strict JSON."""
    try:
        config = normalize_text(_read_text(path))
    except ParseError as exc:
        console.print(f"[red]{exc.kind}:[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print_json(json.dumps(config.to_dict()))
    if save:
        ClientStore(store_path).save_config(config)
        console.print(f"[green]Saved to {store_path}[/green]")


@app.command()
def resolve(
    store_path: Path = typer.Option(DEFAULT_STORE_PATH, "--store", help="Store file"),
) -> None:
    """Show which app config the client would use right now."""
    store = ClientStore(store_path)
    resolved = ConfigResolver(
        environment=environment_config(), stored=store.raw_config()
    ).resolve()

    table = Table(title="Firebase Config")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("source", resolved.source.value)
    if resolved.config is not None:
        for key, value in resolved.config.to_dict().items():
            table.add_row(key, value)
    console.print(table)
    if resolved.source == ConfigSource.NONE:
        console.print("[yellow]No configuration found; run 'fireprov setup'[/yellow]")
        raise typer.Exit(1)


@app.command()
def setup(
    backend_url: str = typer.Option(DEFAULT_BACKEND_URL, "--backend-url"),
    name: str | None = typer.Option(None, "--name", help="Project display name"),
    store_path: Path = typer.Option(DEFAULT_STORE_PATH, "--store", help="Store file"),
) -> None:
    """Ask a running service to provision a project for this client."""
    store = ClientStore(store_path)

    async def _setup() -> None:
        async with ProvisioningClient(store, backend_url) as client:
            if not await client.check_health():
                console.print(f"[red]Service not reachable at {backend_url}[/red]")
                raise typer.Exit(1)
            result = await client.setup_project(name)
        if not result.success:
            console.print(f"[red]Setup failed:[/red] {result.error}")
            raise typer.Exit(1)
        console.print(f"[green]Project created:[/green] {result.project_id}")
        console.print(f"  config saved to {store.path}")

    asyncio.run(_setup())


@app.command()
def health(
    backend_url: str = typer.Option(DEFAULT_BACKEND_URL, "--backend-url"),
) -> None:
    """Probe a running service's liveness endpoint."""
    store = ClientStore()

    async def _check() -> bool:
        async with ProvisioningClient(store, backend_url) as client:
            return await client.check_health()

    if asyncio.run(_check()):
        console.print(f"[green]ok[/green] {backend_url}")
    else:
        console.print(f"[red]unreachable[/red] {backend_url}")
        raise typer.Exit(1)

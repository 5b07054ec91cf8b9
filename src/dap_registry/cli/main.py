"""CLI entry point for dap-registry.

Invoked as::

    dap-registry [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m dap_registry.cli.main

Commands
--------
version        Show the package version
serve          Run the registry HTTP server
did create     Generate a portable DID
dap parse      Validate and split a ``@handle/domain`` string
register       Build, sign, and optionally submit a registration
lookup         Resolve a handle through a registry
verify-proof   Verify a registry's proof of registration
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dap_registry.config import RegistrySettings
from dap_registry.did.bearer import BearerDid, InvalidPortableDid
from dap_registry.did.resolver import SUPPORTED_METHODS
from dap_registry.errors import DapError

# did:key URIs contain the emoji code ":key:" and handles may contain markup.
console = Console(emoji=False, soft_wrap=True)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    sys.exit(1)


def _load_portable_did(path: str) -> BearerDid:
    try:
        portable = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        _fail(f"Could not read portable DID from {path}: {exc}")
    try:
        return BearerDid.import_portable(portable)
    except InvalidPortableDid as exc:
        _fail(f"Invalid portable DID in {path}: {exc}")


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="dap-registry")
def cli() -> None:
    """Decentralized Agnostic Paytag (DAP) registry and tooling"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from dap_registry import __version__

    console.print(f"[bold]dap-registry[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default=None, help="Bind address (overrides REGISTRY_HOST).")
@click.option("--port", type=int, default=None, help="TCP port (overrides REGISTRY_PORT).")
@click.option(
    "--database",
    default=None,
    help="SQLite path or ':memory:' (overrides REGISTRY_DATABASE).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (overrides REGISTRY_LOG_LEVEL).",
)
def serve_command(
    host: str | None,
    port: int | None,
    database: str | None,
    log_level: str | None,
) -> None:
    """Run the registry HTTP server until interrupted."""
    from dap_registry.server.app import run_server

    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "database": database,
            "log_level": log_level,
        }.items()
        if value is not None
    }
    try:
        settings = RegistrySettings(**overrides)
    except (ValidationError, OSError, ValueError) as exc:
        _fail(f"Invalid configuration: {exc}")

    logging.basicConfig(level=getattr(logging, settings.log_level))
    if not settings.portable_did:
        console.print(
            "[yellow]Warning:[/yellow] REGISTRY_PORTABLE_DID is not set; "
            "registrations will fail until it is configured."
        )
    try:
        run_server(settings)
    except DapError as exc:
        _fail(exc.message)
    except OSError as exc:
        _fail(f"Could not start server on {settings.host}:{settings.port}: {exc}")


# ------------------------------------------------------------------
# did command group
# ------------------------------------------------------------------


@cli.group(name="did")
def did_group() -> None:
    """Manage DIDs."""


@did_group.command(name="create")
@click.option(
    "--method",
    type=click.Choice(list(SUPPORTED_METHODS)),
    default="jwk",
    show_default=True,
    help="DID method to create.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the portable DID (including the private key) to this file.",
)
def did_create_command(method: str, output: str | None) -> None:
    """Generate a new DID and print it as a portable DID."""
    bearer = BearerDid.create(method=method)
    portable = json.dumps(bearer.export(), indent=2)

    if output:
        Path(output).write_text(portable + "\n", encoding="utf-8")
        console.print(f"[green]Created[/green] {escape(bearer.uri)}")
        console.print(f"  Written to: {escape(output)}")
    else:
        click.echo(portable)


# ------------------------------------------------------------------
# dap command group
# ------------------------------------------------------------------


@cli.group(name="dap")
def dap_group() -> None:
    """Work with DAP identifiers."""


@dap_group.command(name="parse")
@click.argument("dap")
def dap_parse_command(dap: str) -> None:
    """Validate DAP and print its handle and domain."""
    from dap_registry.dap import Dap

    try:
        parsed = Dap.parse(dap)
    except DapError as exc:
        _fail(f"{exc.message}: {dap!r}")

    table = Table(title=escape(str(parsed)), show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("handle", escape(parsed.handle))
    table.add_row("domain", escape(parsed.domain))
    console.print(table)


# ------------------------------------------------------------------
# register
# ------------------------------------------------------------------


@cli.command(name="register")
@click.argument("handle")
@click.argument("domain")
@click.option(
    "--portable-did",
    "portable_did_file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Portable DID file of the registrant (see 'did create').",
)
@click.option(
    "--registry-url",
    default=None,
    help="Submit the registration to this registry and print the proof.",
)
def register_command(
    handle: str,
    domain: str,
    portable_did_file: str,
    registry_url: str | None,
) -> None:
    """Build and sign a registration of HANDLE at DOMAIN.

    Without --registry-url the signed registration is printed as JSON.
    """
    from dap_registry.client import DapRegistryClient, RegistryClientError
    from dap_registry.registration import DapRegistration

    bearer = _load_portable_did(portable_did_file)
    try:
        registration = DapRegistration.create(handle=handle, did=bearer.uri, domain=domain)
        registration.dap
        registration.sign(bearer)
    except DapError as exc:
        _fail(exc.message)

    if registry_url is None:
        click.echo(json.dumps(registration.to_dict(), indent=2))
        return

    try:
        with DapRegistryClient(registry_url) as client:
            proof = client.register(registration)
    except RegistryClientError as exc:
        _fail(str(exc))
    except DapError as exc:
        _fail(f"Registry returned an invalid proof: {exc.message}")

    console.print(f"[green]Registered[/green] [bold]{escape(str(registration.dap))}[/bold]")
    console.print(f"  DID:             {escape(registration.did)}")
    console.print(f"  Registration ID: {registration.id}")
    click.echo(json.dumps(proof.to_dict(), indent=2))


# ------------------------------------------------------------------
# lookup
# ------------------------------------------------------------------


@cli.command(name="lookup")
@click.argument("handle")
@click.option("--registry-url", required=True, help="Registry root URL.")
def lookup_command(handle: str, registry_url: str) -> None:
    """Resolve HANDLE to its DID through a registry."""
    from dap_registry.client import DapRegistryClient, RegistryClientError

    try:
        with DapRegistryClient(registry_url) as client:
            result = client.lookup(handle)
    except RegistryClientError as exc:
        _fail(str(exc))

    table = Table(title=escape(f"Handle {handle!r}"), show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("did", escape(result.did))
    table.add_row("domain", escape(str(result.proof.get("domain", ""))))
    table.add_row("id", escape(str(result.proof.get("id", ""))))
    console.print(table)


# ------------------------------------------------------------------
# verify-proof
# ------------------------------------------------------------------


@cli.command(name="verify-proof")
@click.argument("proof_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--registry-did", required=True, help="DID of the registry that issued the proof.")
def verify_proof_command(proof_file: str, registry_did: str) -> None:
    """Verify that PROOF_FILE was counter-signed by the registry DID.

    PROOF_FILE holds either the proof itself or a ``{"proof": ...}``
    response body.
    """
    from dap_registry.registry import verify_proof

    try:
        data = json.loads(Path(proof_file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        _fail(f"Could not read proof from {proof_file}: {exc}")

    if isinstance(data, dict) and isinstance(data.get("proof"), dict):
        data = data["proof"]

    try:
        registration = verify_proof(data, registry_did)
    except DapError as exc:
        console.print(f"  [red]FAIL[/red]  {escape(exc.message)}")
        sys.exit(1)

    console.print(f"  [green]PASS[/green]  Signed by {escape(registry_did)}")
    console.print(
        f"\n[green]Proof for {escape(repr(registration.handle))} "
        f"(registration {registration.id}) verified successfully.[/green]"
    )


if __name__ == "__main__":
    cli()

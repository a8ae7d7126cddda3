"""CLI entry point for ucan-agent.

Invoked as::

    w3 [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m ucan_agent.cli.main

Commands
--------
whoami   Print the DID of the configured agent
ls       List uploads in a space (alias: list)

Configuration is read from the environment; see :mod:`ucan_agent.config`.
"""
from __future__ import annotations

import contextlib
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from ucan_agent import __version__
from ucan_agent.config import AgentSettings, load_settings
from ucan_agent.errors import UcanAgentError
from ucan_agent.transport.http import HTTPChannel

err_console = Console(stderr=True, soft_wrap=True)

logger = logging.getLogger(__name__)


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def _settings() -> AgentSettings:
    try:
        return load_settings()
    except UcanAgentError as exc:
        _fail(str(exc))


def _build_channel(settings: AgentSettings) -> HTTPChannel:
    """Open the channel to the configured service."""
    return HTTPChannel(settings.service_url, timeout=settings.timeout)


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="w3")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity; logs go to stderr.",
)
def cli(log_level: str) -> None:
    """Agent for UCAN-authorised storage services."""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


# ------------------------------------------------------------------
# whoami
# ------------------------------------------------------------------


@cli.command(name="whoami")
def whoami_command() -> None:
    """Print the DID of the configured agent."""
    settings = _settings()
    try:
        signer = settings.signer()
    except UcanAgentError as exc:
        _fail(str(exc))
    click.echo(signer.did())


# ------------------------------------------------------------------
# ls / list
# ------------------------------------------------------------------


@cli.command(name="ls")
@click.option("--space", required=True, help="DID of the space to list.")
@click.option(
    "--proof",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a delegation archive granting upload/list on the space.",
)
@click.option("--shards", is_flag=True, default=False, help="Also print the CAR shards of each upload.")
def list_command(space: str, proof: str, shards: bool) -> None:
    """List the uploads registered in a space.

    Prints one upload root per line. With --shards each root is followed
    by its shards, indented by a tab.

    Receipt signatures are only checked when W3UP_SERVICE_KEY names the
    did:key the service signs with; without it a did:web service's
    receipts are read unverified and a warning is logged.
    """
    from ucan_agent.capabilities.upload import UPLOAD_LIST_READER, upload_list
    from ucan_agent.client.connection import connect, execute
    from ucan_agent.delegation.delegation import extract
    from ucan_agent.invocation.invocation import invoke
    from ucan_agent.transport.codec import CAROutboundCodec

    settings = _settings()
    try:
        signer = settings.signer()
        service = settings.service()
        delegation = extract(Path(proof).read_bytes())
        invocation = invoke(signer, service, upload_list(space), [delegation])

        with contextlib.closing(_build_channel(settings)) as channel:
            connection = connect(service, CAROutboundCodec(), channel)
            response = execute([invocation], connection)

        receipt_link = response.get(invocation.link)
        if receipt_link is None:
            _fail(f"receipt not found: {invocation.link}")
        receipt = UPLOAD_LIST_READER.read(receipt_link, response.blocks, service=service)
    except (UcanAgentError, OSError) as exc:
        _fail(str(exc))

    if receipt.out.error is not None:
        err_console.print("[red]Error:[/red] upload/list failed")
        err_console.print_json(data=receipt.out.error.model_dump(mode="json"))
        sys.exit(1)

    page = receipt.out.ok
    logger.debug("Listed %d upload(s) from %s", len(page.results), space)
    for item in page.results:
        click.echo(item.root)
        if shards:
            for shard in item.shards:
                click.echo(f"\t{shard}")


cli.add_command(list_command, name="list")


if __name__ == "__main__":
    cli()

"""SkyDB CLI — keys, links, and JSON documents from the command line."""

import asyncio
import json
from functools import wraps

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from skydb import __version__
from skydb.errors import SkyDBError

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.option("--log-json", is_flag=True, help="Log as JSON lines")
def main(verbose: bool, log_json: bool):
    """SkyDB — signed, revisioned JSON documents on Skynet.

    Documents live in the blob store; registry entries keyed by a public
    key and a data key point at them.
    """
    from skydb.logging import configure_logging

    configure_logging(json_output=log_json, level="DEBUG" if verbose else "WARNING")


def _portal_options(func):
    """Options selecting the portal a command talks to."""
    func = click.option("--config", "-c", "config_path", default=None,
                        type=click.Path(exists=True, dir_okay=False),
                        help="YAML client configuration")(func)
    func = click.option("--portal", "-p", default=None, help="Portal URL")(func)
    func = click.option("--local-dir", "-l", default=None,
                        type=click.Path(file_okay=False),
                        help="Use a local portal stored in this directory")(func)
    return func


def _fails_cleanly(func):
    """Print library errors instead of a traceback, and exit non-zero."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        # ValueError also covers pydantic ValidationError and non-mapping config files.
        try:
            return func(*args, **kwargs)
        except (SkyDBError, ValueError, yaml.YAMLError) as e:
            console.print(f"[red]{type(e).__name__}:[/] {escape(str(e))}")
            raise SystemExit(1)

    return wrapper


def _make_client(config_path: str | None, portal: str | None, local_dir: str | None):
    from skydb.client import SkynetClient
    from skydb.config import ClientConfig, load_config
    from skydb.transport import LocalPortal

    config = load_config(config_path) if config_path else ClientConfig()
    if portal:
        config = config.model_copy(update={"portal_url": ClientConfig(portal_url=portal).portal_url})

    transport = LocalPortal(local_dir) if local_dir else None
    return SkynetClient(config, transport=transport)


def _run(client, coro_fn):
    async def runner():
        async with client:
            return await coro_fn(client)

    return asyncio.run(runner())


# ── Keys ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--seed", "-s", default=None, help="Derive keys from this seed instead of a random one")
def keygen(seed: str | None):
    """Generate a key pair (and seed)."""
    from skydb.crypto import derive_keypair, gen_keypair_and_seed

    if seed is None:
        keys = gen_keypair_and_seed()
        seed = keys.seed
    else:
        keys = derive_keypair(seed)

    table = Table(title="Key pair")
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    table.add_row("seed", seed)
    table.add_row("public key", keys.public_key)
    table.add_row("private key", keys.private_key)
    console.print(table)


# ── Links ────────────────────────────────────────────────────────────


@main.command(name="entry-link")
@click.argument("public_key")
@click.argument("data_key")
@_fails_cleanly
def entry_link(public_key: str, data_key: str):
    """Print the entry link for PUBLIC_KEY and DATA_KEY."""
    from skydb.registry.client import entry_link as compute_entry_link

    console.print(compute_entry_link(public_key, data_key))


@main.command()
@click.argument("value")
@click.option("--from-subdomain", is_flag=True, help="Read a base32 link from the host name")
@_fails_cleanly
def parse(value: str, from_subdomain: bool):
    """Parse a link, link URI, or portal URL."""
    from skydb.links import Link, parse_link

    parsed = parse_link(value, from_subdomain=from_subdomain)
    if parsed is None:
        console.print(f"[yellow]No link found in[/] {escape(value)}")
        raise SystemExit(1)

    link = Link.from_string(parsed.link)
    table = Table(title="Link")
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    table.add_row("link", str(link))
    table.add_row("base32", link.to_base32())
    table.add_row("kind", "entry" if link.is_entry_link else "content")
    table.add_row("path", parsed.path or "-")
    console.print(table)


@main.command()
@click.argument("entry_link")
@_portal_options
@_fails_cleanly
def resolve(entry_link: str, config_path: str | None, portal: str | None, local_dir: str | None):
    """Resolve ENTRY_LINK to the content link its entry points at."""
    client = _make_client(config_path, portal, local_dir)
    link = _run(client, lambda c: c.resolver.resolve(entry_link))
    console.print(link)


# ── Documents ────────────────────────────────────────────────────────


@main.command()
@click.argument("public_key")
@click.argument("data_key")
@_portal_options
@_fails_cleanly
def get(public_key: str, data_key: str, config_path: str | None, portal: str | None,
        local_dir: str | None):
    """Print the JSON document stored under PUBLIC_KEY and DATA_KEY."""
    client = _make_client(config_path, portal, local_dir)
    response = _run(client, lambda c: c.db.get_json(public_key, data_key))

    if response.data_link is None:
        console.print("[yellow]No entry found.[/]")
        return

    console.print(f"[dim]{response.data_link}[/]")
    console.print_json(json.dumps(response.data))


@main.command(name="set")
@click.argument("data_key")
@click.argument("json_file", type=click.File("r"))
@click.option("--seed", "-s", required=True, envvar="SKYDB_SEED", help="Seed of the writing key")
@_portal_options
@_fails_cleanly
def set_document(data_key: str, json_file, seed: str, config_path: str | None,
                 portal: str | None, local_dir: str | None):
    """Store the JSON object in JSON_FILE under DATA_KEY ('-' reads stdin)."""
    from skydb.crypto import derive_keypair

    try:
        document = json.load(json_file)
    except ValueError as e:
        console.print(f"  [red]Failed to parse:[/] {escape(str(e))}")
        raise SystemExit(1)
    if not isinstance(document, dict):
        console.print("  [red]The document must be a JSON object.[/]")
        raise SystemExit(1)

    keys = derive_keypair(seed)
    client = _make_client(config_path, portal, local_dir)
    response = _run(client, lambda c: c.db.set_json(keys.private_key, data_key, document))
    console.print(f"[green]Stored:[/] {response.data_link}")


@main.command()
@click.argument("data_key")
@click.option("--seed", "-s", required=True, envvar="SKYDB_SEED", help="Seed of the writing key")
@_portal_options
@_fails_cleanly
def delete(data_key: str, seed: str, config_path: str | None, portal: str | None,
           local_dir: str | None):
    """Delete the document stored under DATA_KEY."""
    from skydb.crypto import derive_keypair

    keys = derive_keypair(seed)
    client = _make_client(config_path, portal, local_dir)
    _run(client, lambda c: c.db.delete_json(keys.private_key, data_key))
    console.print(f"[green]Deleted:[/] {data_key}")


if __name__ == "__main__":
    main()

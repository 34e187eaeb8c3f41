"""CLI for infura-extract."""

import logging
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.traceback import install

from infura_extract.cache import BlockCache, detect_compressor
from infura_extract.config import CACHE_DIR_ENV, Settings
from infura_extract.core import parse_range, resolve_range
from infura_extract.core.pipeline import ExtractionPipeline
from infura_extract.data import load_network_table
from infura_extract.errors import ConfigError, HeadQueryError, TransportError, ValidationError
from infura_extract.rpc import InfuraRPCProvider, RemoteFetcher

# Diagnostics go to stderr; stdout carries nothing but addresses
err_console = Console(stderr=True)

install(console=err_console)

app = typer.Typer(
    name="infura-extract",
    help="Extract participant addresses from blocks fetched over JSON-RPC",
    add_completion=False,
)

logger = logging.getLogger("infura_extract")


def configure_logging(debug: bool = False) -> None:
    """
    Route package logs to stderr through rich.

    Parameters
    ----------
    debug : bool
        Log at DEBUG level instead of INFO

    """
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))

    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    return typer.Exit(code=1)


def _list_networks(value: bool) -> None:
    if not value:
        return

    table = Table(title="Supported Networks", show_header=True, header_style="bold magenta")
    table.add_column("Network", style="cyan")
    table.add_column("Endpoint", style="green")

    for name, endpoint in load_network_table().items():
        table.add_row(name, endpoint)

    err_console.print(table)
    raise typer.Exit()


def _resolve_head(provider: InfuraRPCProvider, network: str) -> int:
    try:
        return provider.get_block_number(network)
    except TransportError as e:
        msg = f"Error fetching latest block number for {network}: {e}"
        raise HeadQueryError(msg) from e


@app.command()
def extract(
    network: str = typer.Argument(..., help="Network name (see --list-networks)"),
    block_range: str = typer.Argument(
        ...,
        metavar="RANGE",
        help="Block number, <start>-<end>, <start>-latest or latest",
    ),
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        help=f"Cache root directory (overrides {CACHE_DIR_ENV})",
    ),
    no_disk_cache: bool = typer.Option(False, "--no-disk-cache", help="Disable the on-disk block cache"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
    list_networks: bool = typer.Option(
        False,
        "--list-networks",
        help="List supported networks and exit",
        callback=_list_networks,
        is_eager=True,
    ),
) -> None:
    """
    Print the sender and recipient address of every transaction in a block range.

    Examples:

        # A single block
        infura-extract ethereum 19000000

        # A range of blocks
        infura-extract base 12000000-12000100

        # From a block up to the current head
        infura-extract polygon 60000000-latest
    """
    configure_logging(debug)
    load_dotenv()

    try:
        networks = load_network_table()
        network = networks.validate_network(network)
        request = parse_range(block_range)
        settings = Settings.from_env(cache_dir=cache_dir, disk_cache=not no_disk_cache, networks=networks)
    except (ValidationError, ConfigError) as e:
        raise _fail(str(e)) from None

    sources = {"option": "(from --cache-dir)", "env": f"(from {CACHE_DIR_ENV})", "default": "(default)"}
    logger.debug("Using cache directory base: %s %s", settings.cache_root, sources[settings.cache_root_source])
    logger.debug("Connected to %s endpoint: %s%s", network, networks[network], settings.masked_api_key)

    with InfuraRPCProvider(settings.networks, settings.api_key) as provider:
        try:
            resolved = resolve_range(request, lambda: _resolve_head(provider, network))
        except (HeadQueryError, ValidationError) as e:
            raise _fail(str(e)) from None

        cache = BlockCache(
            RemoteFetcher(provider),
            cache_root=settings.cache_root if settings.disk_cache else None,
            compressor=detect_compressor(),
        )
        pipeline = ExtractionPipeline(cache, network)
        pipeline.run(resolved, sink=typer.echo)

    logger.debug("Cache statistics: %s", cache.stats)


if __name__ == "__main__":
    app()

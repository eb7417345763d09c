"""Dataset inspection CLI.

Loads JSON dataset documents from a directory the same way a producer would
and shows how a payload would be split for synchronization.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from datasync.config import SyncSettings
from datasync.models.descriptor import DatasetTypeDescriptor
from datasync.models.events import ReloadResult
from datasync.services.codec import JsonCodec
from datasync.services.document_source import JsonDocumentSource
from datasync.services.encoder import ChunkEncoder
from datasync.services.registry import DatasetRegistry
from datasync.services.transport import LoopbackTransport


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=lambda name=None: structlog.PrintLogger(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        cache_logger_on_first_use=False,
    )


logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="datasync",
    help="""Inspect dataset documents and snapshot chunking.

Examples:

  # Load every document of a dataset folder and report validity
  uv run datasync inspect ./data --folder widgets --array

  # Show how a payload would be chunked for peers
  uv run datasync split snapshot.json --max-chunk-size 30000""",
    rich_markup_mode="markdown",
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level (default: DATASYNC_LOG_LEVEL or INFO)",
    ),
) -> None:
    """Configure logging from settings before running a command."""
    settings = SyncSettings.from_env()
    level = settings.log_level if log_level is None else SyncSettings(log_level=log_level).log_level
    configure_logging(level)


@app.command()
def inspect(
    directory: str = typer.Argument(
        ...,
        help="Data directory containing <namespace>/<folder>/ trees",
    ),
    folder: str = typer.Option(
        ...,
        "--folder",
        "-f",
        help="Dataset folder to load",
    ),
    namespace: Optional[str] = typer.Option(
        None,
        "--namespace",
        "-n",
        help="Owner prefix placed before the folder",
    ),
    array: bool = typer.Option(
        False,
        "--array",
        "-a",
        help="Expand array documents into one record per element",
    ),
    show_entries: bool = typer.Option(
        False,
        "--list",
        help="Print the identifier of every loaded record",
    ),
) -> None:
    """Load a dataset folder and report valid and invalid documents."""
    root = Path(directory)

    if not root.is_dir():
        logger.error("directory_not_found", directory=str(root))
        raise typer.Exit(1)

    descriptor = DatasetTypeDescriptor(
        name=folder,
        folder=folder,
        namespace=namespace,
        supports_array=array,
    )
    registry = DatasetRegistry()
    store = registry.register(descriptor, codec=JsonCodec())
    registry.initialize()

    source = JsonDocumentSource(root)
    documents = asyncio.run(source.load(descriptor))
    result: ReloadResult = store.reload(documents)

    typer.echo(
        f"Loaded {result.valid_count} {descriptor.name} records "
        f"({result.invalid_count} invalid, {result.deferred_count} deferred) from {len(documents)} documents"
    )
    for error in result.errors:
        typer.echo(f"  invalid: {error}")
    if show_entries:
        for identifier in sorted(store.identifiers()):
            typer.echo(f"  {identifier}")


@app.command()
def split(
    file: str = typer.Argument(
        ...,
        help="Payload file to split",
    ),
    max_chunk_size: Optional[int] = typer.Option(
        None,
        "--max-chunk-size",
        "-s",
        help="Maximum chunk size in bytes (default: DATASYNC_MAX_CHUNK_SIZE or 30000)",
    ),
    dataset_type: str = typer.Option(
        "payload",
        "--type",
        "-t",
        help="Dataset type name to tag the chunks with",
    ),
) -> None:
    """Show the chunk plan for a payload file."""
    path = Path(file)
    if not path.is_file():
        logger.error("file_not_found", file=str(path))
        raise typer.Exit(1)

    size = max_chunk_size if max_chunk_size is not None else SyncSettings.from_env().max_chunk_size
    if size <= 0:
        typer.echo("--max-chunk-size must be positive")
        raise typer.Exit(2)

    payload = path.read_bytes()
    encoder = ChunkEncoder(transport=LoopbackTransport(), max_chunk_size=size)
    chunks = encoder.split(dataset_type, payload)

    typer.echo(f"{len(payload)} bytes -> {len(chunks)} chunk(s) of at most {size} bytes")
    typer.echo(f"session {chunks[0].session_id}")
    for chunk in chunks:
        typer.echo(f"  [{chunk.index}/{chunk.total_count}] {len(chunk.payload)} bytes")


@app.command()
def version() -> None:
    """Show version information."""
    from datasync import __version__

    typer.echo(f"datasync {__version__}")

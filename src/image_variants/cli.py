"""CLI for the image variant pipeline.

Commands:
    process <url>    - Generate and store every size for one image
    get <url>        - URL for a single size (generates on miss)
    batch <file>     - Process a JSON list of images (or movies with --movies)
    keys <url>       - Show the object keys an image maps to (offline)
    presign <key>    - Print a presigned GET URL for a key (offline)
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from image_variants.config import StoreConfig, settings
from image_variants.errors import ConfigurationError, PipelineError
from image_variants.models.batch import BatchItem
from image_variants.models.enums import AssetCategory
from image_variants.pipeline.keys import content_hash, object_keys
from image_variants.pipeline.orchestrator import ImagePipeline
from image_variants.signing.sigv4 import SigV4Signer
from image_variants.tmdb import movie_image_jobs

app = typer.Typer(
    name="image-variants",
    help="Content-addressed image variants on S3-compatible storage",
    no_args_is_help=True,
)
console = Console()


def run_async(coro):
    """Run an async coroutine in sync context."""
    return asyncio.run(coro)


def load_store_config() -> StoreConfig:
    """Read store configuration once, exiting with code 2 if it is incomplete."""
    try:
        return StoreConfig.from_settings(settings)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log every pipeline step")
    ] = False,
):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def process(
    url: Annotated[str, typer.Argument(help="Source image URL")],
    category: Annotated[
        AssetCategory, typer.Option("--category", "-c", help="Asset category")
    ] = AssetCategory.POSTER,
):
    """Generate and store every catalog size for one image."""
    config = load_store_config()

    async def _process():
        async with ImagePipeline.from_config(config) as pipeline:
            return await pipeline.process_image(url, category)

    try:
        variants = run_async(_process())
    except PipelineError as e:
        console.print(f"[red]ERROR[/red]: {e}")
        raise typer.Exit(1) from e

    table = Table(title=f"{category.value} variants")
    table.add_column("Size", style="cyan")
    table.add_column("URL")
    for size_name, variant_url in variants.items():
        table.add_row(size_name, variant_url)
    console.print(table)


@app.command()
def get(
    url: Annotated[str, typer.Argument(help="Source image URL")],
    category: Annotated[
        AssetCategory, typer.Option("--category", "-c", help="Asset category")
    ] = AssetCategory.POSTER,
    size: Annotated[
        str | None, typer.Option("--size", "-s", help="Size name (catalog default if omitted)")
    ] = None,
):
    """Print the URL for a single size."""
    config = load_store_config()

    async def _get():
        async with ImagePipeline.from_config(config) as pipeline:
            return await pipeline.get_image(url, category, size)

    try:
        console.print(run_async(_get()), soft_wrap=True)
    except PipelineError as e:
        console.print(f"[red]ERROR[/red]: {e}")
        raise typer.Exit(1) from e


@app.command()
def batch(
    path: Annotated[Path, typer.Argument(help="JSON file with a list of items")],
    movies: Annotated[
        bool,
        typer.Option(
            "--movies", help="Items are movie records with poster_path/backdrop_path"
        ),
    ] = False,
):
    """Process many images sequentially. Failed items do not stop the batch."""
    if not path.is_file():
        console.print(f"[red]Error:[/red] File does not exist: {path}")
        raise typer.Exit(1)

    records = json.loads(path.read_text())
    if not isinstance(records, list):
        console.print("[red]Error:[/red] Expected a JSON list")
        raise typer.Exit(1)

    items: list[BatchItem | dict] = movie_image_jobs(records) if movies else records
    if not items:
        console.print("[yellow]Nothing to process.[/yellow]")
        raise typer.Exit(0)

    config = load_store_config()
    console.print(f"[blue]Processing {len(items)} image(s)...[/blue]\n")

    async def _batch():
        async with ImagePipeline.from_config(config) as pipeline:
            return await pipeline.batch_process_images(items)

    results = run_async(_batch())

    table = Table(title="Batch results")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for result in results.values():
        if result.success:
            table.add_row(result.id, "[green]OK[/green]", f"{len(result.variants or {})} sizes")
        else:
            table.add_row(result.id, "[red]FAILED[/red]", "; ".join(result.errors))
    console.print(table)

    succeeded = sum(1 for r in results.values() if r.success)
    console.print(f"\n[bold]Summary:[/bold] {succeeded}/{len(results)} succeeded")
    if succeeded != len(results):
        raise typer.Exit(1)


@app.command()
def keys(
    url: Annotated[str, typer.Argument(help="Source image URL")],
    category: Annotated[
        AssetCategory, typer.Option("--category", "-c", help="Asset category")
    ] = AssetCategory.POSTER,
):
    """Show the content hash and object keys for an image without touching the network."""
    console.print(f"[bold]Hash:[/bold] {content_hash(url)}")
    for size_name, key in object_keys(url, category).items():
        console.print(f"  {size_name:>9}  {key}")


@app.command()
def presign(
    key: Annotated[str, typer.Argument(help="Object key")],
    expires: Annotated[
        int, typer.Option("--expires", "-e", min=1, max=604800, help="Lifetime in seconds")
    ] = 604800,
):
    """Print a presigned GET URL for an object key."""
    signer = SigV4Signer(load_store_config())
    console.print(signer.presigned_url(key, expires), soft_wrap=True)


if __name__ == "__main__":
    app()

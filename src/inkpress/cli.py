"""Command line interface for inkpress."""

import logging
import os
from importlib import metadata
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from inkpress.config import load_site_config, settings
from inkpress.core.site import SiteGenerator
from inkpress.errors import BuildCancelledError, BuildError

app = typer.Typer(
    name="inkpress",
    help="Turn a directory of Markdown content into a static site.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            current = metadata.version("inkpress")
        except metadata.PackageNotFoundError:
            current = "unknown"
        console.print(f"inkpress {current}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Log debug output.")] = False,
) -> None:
    """inkpress - static site content-rendering pipeline."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _config_path(input_dir: Path, config: Path | None) -> Path:
    if config is not None:
        return config
    return input_dir / settings.site_config


@app.command()
def build(
    input_dir: Annotated[Path, typer.Argument(help="Content directory.")],
    output_dir: Annotated[Path, typer.Argument(help="Where the site is published.")],
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Site configuration YAML.")
    ] = None,
    templates: Annotated[
        Optional[Path], typer.Option("--templates", "-t", help="Template directory overriding the defaults.")
    ] = None,
    workers: Annotated[int, typer.Option("--workers", "-w", min=1, help="Render threads.")] = settings.workers,
    strict: Annotated[bool, typer.Option("--strict", help="Fail when any record reports an error.")] = False,
) -> None:
    """Build the site from INPUT_DIR into OUTPUT_DIR."""
    try:
        generator = SiteGenerator(
            content_dir=input_dir,
            output_dir=output_dir,
            site=load_site_config(_config_path(input_dir, config)),
            template_dir=templates or settings.template_dir,
            workers=workers,
        )
        result = generator.rebuild()
    except (BuildError, BuildCancelledError) as e:
        console.print(f"[red]Build failed:[/red] {e}")
        raise typer.Exit(1)

    for error in result.errors:
        console.print(f"[yellow]warning:[/yellow] {error}")
    console.print(
        f"[green]Built[/green] {len(result.snapshot.store)} records "
        f"into {len(result.written)} files in {output_dir}"
    )
    if strict and result.errors:
        raise typer.Exit(1)


@app.command()
def show(
    input_dir: Annotated[Path, typer.Argument(help="Content directory.")],
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Site configuration YAML.")
    ] = None,
) -> None:
    """Print the tag index and relations without rendering anything."""
    try:
        site = load_site_config(_config_path(input_dir, config))
        snapshot = SiteGenerator(content_dir=input_dir, output_dir=Path(os.devnull), site=site).load()
    except BuildError as e:
        console.print(f"[red]Load failed:[/red] {e}")
        raise typer.Exit(1)

    tags = Table(title="Tags")
    tags.add_column("Tag")
    tags.add_column("Count", justify="right")
    for tag, records in snapshot.indexes.tags.iter():
        tags.add_row(tag, str(len(records)))
    console.print(tags)

    relations = Table(title="Content")
    for column in ("Slug", "Date", "Back-links", "Related", "Previous", "Next"):
        relations.add_column(column)
    for record in snapshot.store:
        relation = snapshot.relation(record.slug)
        relations.add_row(
            record.slug,
            record.date.date().isoformat() if record.date else "",
            ", ".join(relation.back_links),
            ", ".join(relation.related),
            relation.previous or "",
            relation.next or "",
        )
    console.print(relations)

    for error in snapshot.errors:
        console.print(f"[yellow]warning:[/yellow] {error}")


@app.command()
def serve(
    input_dir: Annotated[Path, typer.Argument(help="Content directory.")],
    output_dir: Annotated[Path, typer.Argument(help="Where the site is published.")],
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Site configuration YAML.")
    ] = None,
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8000,
) -> None:
    """Build the site and serve it over HTTP."""
    import uvicorn

    os.environ["INKPRESS_CONTENT_DIR"] = str(input_dir)
    os.environ["INKPRESS_OUTPUT_DIR"] = str(output_dir)
    os.environ["INKPRESS_SITE_CONFIG"] = str(_config_path(input_dir, config))
    uvicorn.run("inkpress.main:app", host=host, port=port)


if __name__ == "__main__":
    app()

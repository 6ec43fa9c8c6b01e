"""
Sketchlab CLI - turn sketches into transparent line art.

A command-line shell around the sketchlab pipeline: load an image, threshold
it, and export PNG or SVG files at one or all catalog sizes.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from sketchlab.config import get_settings
from sketchlab.errors import DecodeError, InvalidInputError, SketchlabError
from sketchlab.export import DeliveryQueue, DirectorySink, ExportCoordinator
from sketchlab.session import Session
from sketchlab.threshold import guess_media_type

settings = get_settings()

app = typer.Typer(
    name="sketchlab",
    help="✏️ [bold cyan]Sketchlab[/] - Sketch to transparent line art\n\n"
         "Remove the paper background from a scanned sketch and export the "
         "lines as PNG or SVG at [bold green]300, 600 and 1200 px[/].",
    rich_markup_mode="rich",
    add_completion=True,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

console = Console()
error_console = Console(stderr=True, style="bold red")


class Format(str, Enum):
    """Export format."""
    png = "png"
    svg = "svg"


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        from sketchlab import __version__
        console.print(Panel(
            f"[bold cyan]Sketchlab[/] version [bold green]{__version__}[/]",
            title="Version Info",
            border_style="cyan",
        ))
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def validate_input_file(path: Path) -> Path:
    """Validate that input file exists and looks like an image."""
    if not path.exists():
        error_console.print(f"❌ Input file not found: [yellow]{path}[/]")
        raise typer.Exit(1)

    media_type = guess_media_type(path)
    if not media_type or not media_type.startswith("image/"):
        error_console.print(
            f"❌ Not an image file: [yellow]{path.name}[/] "
            f"(media type {media_type or 'unknown'})"
        )
        raise typer.Exit(1)

    return path


def format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"


async def _load_session(input_path: Path, threshold: int) -> Session:
    session = Session(settings)
    await session.set_threshold(threshold)
    await session.load(
        input_path.read_bytes(),
        media_type=guess_media_type(input_path),
        name=input_path.name,
    )
    return session


def _make_coordinator(output_dir: Path, interval: float, force: bool) -> ExportCoordinator:
    queue = DeliveryQueue(
        DirectorySink(output_dir, overwrite=force),
        interval=interval,
        release_delay=settings.release_delay,
    )
    return ExportCoordinator(queue, sizes=settings.sizes)


def _fail(message: str, verbose: bool) -> None:
    error_console.print(f"❌ {message}")
    if verbose:
        console.print_exception()
    raise typer.Exit(1)


ThresholdOption = Annotated[
    int,
    typer.Option(
        "--threshold", "-t",
        help="Brightness cutoff: brighter pixels become transparent",
        min=0,
        max=255,
        rich_help_panel="Processing Options",
    )
]
OutputDirOption = Annotated[
    Path,
    typer.Option(
        "--output-dir", "-o",
        help="Directory to save exports into",
        rich_help_panel="Export Options",
    )
]
FormatOption = Annotated[
    Format,
    typer.Option(
        "--format", "-f",
        help="Export format",
        rich_help_panel="Export Options",
    )
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show detailed progress information")
]
ForceOption = Annotated[
    bool,
    typer.Option("--force/--no-force", help="Overwrite existing exports")
]


@app.command("convert", rich_help_panel="Commands")
def convert(
    input_file: Annotated[
        Path,
        typer.Argument(help="Path to the sketch image", show_default=False)
    ],
    output_dir: OutputDirOption = settings.output_dir,
    threshold: ThresholdOption = settings.default_threshold,
    size: Annotated[
        int,
        typer.Option(
            "--size", "-s",
            help="Output width in pixels",
            min=1,
            rich_help_panel="Export Options",
        )
    ] = settings.default_size,
    format: FormatOption = Format(settings.default_format),
    verbose: VerboseOption = False,
    force: ForceOption = True,
):
    """
    ✏️ Export a sketch at one size.

    [bold]Examples:[/]

      [dim]# 600px transparent PNG[/]
      $ sketchlab convert drawing.jpg

      [dim]# 1200px SVG with a darker cutoff[/]
      $ sketchlab convert drawing.jpg -s 1200 -f svg -t 100
    """
    setup_logging(verbose)
    input_path = validate_input_file(input_file)

    async def run_export():
        session = await _load_session(input_path, threshold)
        coordinator = _make_coordinator(output_dir, settings.delivery_interval, force)
        # The CLI accepts any width; the session's catalog check is for UI selections.
        session.selected_size = size
        session.select_format(format.value)
        try:
            return session, await session.download(coordinator)
        finally:
            await coordinator.queue.drain()

    try:
        with console.status("[cyan]Processing sketch...[/]"):
            session, delivery = asyncio.run(run_export())
    except (InvalidInputError, DecodeError) as e:
        _fail(str(e), verbose)
    except SketchlabError as e:
        _fail(f"Export failed: {e}", verbose)

    if delivery is None:
        console.print("[yellow]⚠️ Nothing was exported.[/]")
        raise typer.Exit(1)

    _show_deliveries([delivery], session)


@app.command("batch", rich_help_panel="Commands")
def batch(
    input_file: Annotated[
        Path,
        typer.Argument(help="Path to the sketch image", show_default=False)
    ],
    output_dir: OutputDirOption = settings.output_dir,
    threshold: ThresholdOption = settings.default_threshold,
    format: FormatOption = Format(settings.default_format),
    interval: Annotated[
        float,
        typer.Option(
            "--interval",
            help="Pause between deliveries, in seconds",
            min=0.0,
            rich_help_panel="Export Options",
        )
    ] = settings.delivery_interval,
    verbose: VerboseOption = False,
    force: ForceOption = True,
):
    """
    📦 Export a sketch at every catalog size.

    [bold]Examples:[/]

      [dim]# sketch-300px.png, sketch-600px.png, sketch-1200px.png[/]
      $ sketchlab batch drawing.jpg -o exports/
    """
    setup_logging(verbose)
    input_path = validate_input_file(input_file)

    async def run_batch():
        session = await _load_session(input_path, threshold)
        coordinator = _make_coordinator(output_dir, interval, force)
        session.select_format(format.value)
        try:
            return session, await session.batch_export(coordinator)
        finally:
            await coordinator.queue.drain()

    try:
        with console.status("[cyan]Exporting all sizes...[/]"):
            session, report = asyncio.run(run_batch())
    except (InvalidInputError, DecodeError) as e:
        _fail(str(e), verbose)

    _show_deliveries(report.delivered, session)
    for failure in report.failures:
        error_console.print(f"❌ {failure}")
    if not report.ok:
        raise typer.Exit(1)


@app.command("preview", rich_help_panel="Commands")
def preview(
    input_file: Annotated[
        Path,
        typer.Argument(help="Path to the sketch image", show_default=False)
    ],
    output_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path for the processed PNG [dim](default: input_name-lines.png)[/]",
            show_default=False,
        )
    ] = None,
    threshold: ThresholdOption = settings.default_threshold,
    verbose: VerboseOption = False,
):
    """
    🖼️ Write the processed line art at its original size.
    """
    setup_logging(verbose)
    input_path = validate_input_file(input_file)
    if output_file is None:
        output_file = input_path.with_name(f"{input_path.stem}-lines.png")

    try:
        session = asyncio.run(_load_session(input_path, threshold))
    except SketchlabError as e:
        _fail(str(e), verbose)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_bytes(session.preview_png())
    console.print(f"✅ Saved preview to [cyan]{output_file}[/]")


@app.command("info", rich_help_panel="Commands")
def info(
    input_file: Annotated[
        Path,
        typer.Argument(help="Path to image file to analyze")
    ],
    threshold: ThresholdOption = settings.default_threshold,
):
    """
    📊 Display information about a sketch and how it thresholds.
    """
    path = validate_input_file(input_file)

    try:
        session = asyncio.run(_load_session(path, threshold))
    except SketchlabError as e:
        _fail(str(e), False)

    source = session.source
    processed = session.processed
    total = source.width * source.height
    transparent = processed.transparent_pixel_count()

    table = Table(title=f"📁 {path.name}", box=box.ROUNDED, border_style="cyan")
    table.add_column("Property", style="cyan bold")
    table.add_column("Value", style="white")

    table.add_row("Dimensions", f"{source.width} × {source.height} pixels")
    table.add_row("File Size", format_size(path.stat().st_size))
    table.add_row("Media Type", source.media_type)
    table.add_row("Threshold", str(processed.threshold))
    table.add_row("Transparent", f"{transparent / total * 100:.1f}%")
    table.add_row("Line Pixels", f"{processed.opaque_pixel_count():,}")

    console.print()
    console.print(table)

    sizes = Table(title="📐 Export Sizes", box=box.ROUNDED, border_style="yellow")
    sizes.add_column("Width", style="yellow bold")
    sizes.add_column("Height")
    from sketchlab.resize import target_size
    for width in settings.sizes:
        _, height = target_size(source.width, source.height, width)
        sizes.add_row(f"{width}px", f"{height}px")
    console.print()
    console.print(sizes)


@app.command("render", rich_help_panel="Commands")
def render(
    svg_file: Annotated[
        Path,
        typer.Argument(help="Path to SVG file to render")
    ],
    output_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="Path for output PNG [dim](default: svg_name.png)[/]",
            show_default=False,
        )
    ] = None,
    scale: Annotated[
        int,
        typer.Option(
            "--scale", "-s",
            help="Scale factor for rendering",
            min=1,
            max=10,
        )
    ] = 1,
):
    """
    🖼️ Render an exported SVG file to PNG.

    Useful for checking that a vector export matches its PNG twin.
    """
    from sketchlab.render import render_svg_to_png

    if not svg_file.exists():
        error_console.print(f"❌ SVG file not found: {svg_file}")
        raise typer.Exit(1)

    if output_file is None:
        output_file = svg_file.with_suffix('.png')

    with console.status("[cyan]Rendering SVG...[/]"):
        try:
            render_svg_to_png(str(svg_file), str(output_file), scale=scale)
        except Exception as e:
            error_console.print(f"❌ Render failed: {e}")
            raise typer.Exit(1)
    console.print(f"✅ Rendered to [cyan]{output_file}[/]")


def _show_deliveries(deliveries, session: Session):
    """Display delivered files in a results panel."""
    result_table = Table(box=box.ROUNDED, border_style="green")
    result_table.add_column("File", style="bold")
    result_table.add_column("Dimensions")
    result_table.add_column("Size")
    result_table.add_column("Saved To", style="cyan")

    for delivery in deliveries:
        artifact = delivery.artifact
        result_table.add_row(
            artifact.filename,
            f"{artifact.width} × {artifact.height}",
            format_size(len(artifact)),
            str(delivery.location or "-"),
        )

    title = f"✨ Export Complete (threshold {session.threshold}, {session.selected_format.name.lower()})"
    console.print()
    console.print(Panel(result_table, title=title, border_style="green"))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version", "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        )
    ] = None,
):
    """
    ✏️ [bold cyan]Sketchlab[/] - Sketch to transparent line art

    [bold]Quick Start:[/]

      [dim]# Export at the default size[/]
      $ sketchlab convert sketch.jpg

      [dim]# Export every size as SVG[/]
      $ sketchlab batch sketch.jpg -f svg
    """
    if ctx.invoked_subcommand is None:
        pass


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()

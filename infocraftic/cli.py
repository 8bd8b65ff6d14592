"""Command-line interface for the Infocraftic infographic generator."""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .canvas import DrawingSurface, PptxSurface, PreviewSurface
from .content_extractor import ContentExtractor
from .content_processor import ContentProcessor
from .element_renderer import ElementRenderer
from .exceptions import DrawFailed, InfocrafticError
from .layout_engine import LayoutEngine, load_layout_config
from .models import ElementType, ExtractorConfig, StructuredContent
from .session import InfographicSession

# Load environment variables
load_dotenv()

console = Console()

ELEMENT_CHOICES = [element.value for element in ElementType]
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".svg", ".pdf"}


def _configure_logging(debug: bool, log_file: Optional[Path]):
    """Configure root logging handlers and level."""
    import logging

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w"))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def _read_source(input_path: Optional[Path], text: Optional[str]) -> str:
    if input_path is None and not text:
        raise click.UsageError("Provide --input or --text")
    processor = ContentProcessor()
    return processor.load_text(input_path if input_path is not None else text)


def _build_extractor(model: Optional[str], base_url: Optional[str]) -> ContentExtractor:
    config = ExtractorConfig.from_env(model=model, base_url=base_url)
    if not config.api_key:
        console.print("[red]Error: DEEPSEEK_API_KEY environment variable not set[/red]")
        console.print("Hint: add DEEPSEEK_API_KEY to your environment or a .env file")
        sys.exit(1)
    return ContentExtractor(config)


def _create_surface(output: Path, width: float, height: float) -> DrawingSurface:
    if output.suffix.lower() in IMAGE_SUFFIXES:
        return PreviewSurface(width, height)
    if output.suffix.lower() != ".pptx":
        raise click.BadParameter(
            f"Unsupported output type '{output.suffix}', use .pptx or an image suffix",
            param_hint="--output"
        )
    return PptxSurface(width, height)


def _build_layout_engine(layout_config: Optional[Path]) -> LayoutEngine:
    try:
        return LayoutEngine(config=load_layout_config(layout_config))
    except (ValueError, ValidationError) as e:
        raise click.BadParameter(str(e), param_hint="--layout-config")


def _render_elements(
    session: InfographicSession,
    elements: Tuple[str, ...],
    output: Path
) -> List[Tuple[str, str]]:
    """Add the requested elements and save the surface; returns (element, status) rows."""
    available = session.available_elements()
    requested = [ElementType(e) for e in elements] if elements else available
    rows = []

    for element in requested:
        if element not in available:
            console.print(f"[yellow]⚠️  {element.value} is not available for this content, skipping[/yellow]")
            rows.append((element.value, "unavailable"))
            continue
        try:
            result = session.add_element(element)
        except DrawFailed as e:
            console.print(f"[red]❌ {e}[/red]")
            rows.append((element.value, "failed"))
            continue
        status = f"{result.commands_issued} draw calls"
        if result.skipped_nodes:
            status += f", skipped nodes {result.skipped_nodes}"
        rows.append((element.value, status))

    surface = session.renderer.surface
    try:
        surface.save(output)
    except OSError as e:
        console.print(f"[red]❌ Could not save infographic to {output}: {e}[/red]")
        sys.exit(1)
    finally:
        if isinstance(surface, PreviewSurface):
            surface.close()
    return rows


def _print_summary(output: Path, rows: List[Tuple[str, str]]) -> None:
    table = Table(title="Infographic Summary")
    table.add_column("Element", style="bold")
    table.add_column("Result")
    for element, status in rows:
        table.add_row(element, status)
    console.print(table)
    console.print(f"\n[green]🎯 Infographic saved to: {output}[/green]")


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Show debug logs and stack traces on error")
@click.option("--log-file", type=click.Path(path_type=Path), help="Write logs to file")
@click.pass_context
def cli(ctx: click.Context, debug: bool, log_file: Optional[Path]):
    """
    Infocraftic - turn text into infographic elements.

    Extract a title, overview, statistics and a flowchart from text with an
    LLM and lay them out on a 1080x1920 style canvas.
    """
    _configure_logging(debug, log_file)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["log_file"] = log_file


@cli.command()
@click.option(
    "--input", "-i", "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to input text file (.txt, .md)"
)
@click.option("--text", help="Raw text to analyse instead of --input")
@click.option(
    "--output", "-o",
    default="infographic.pptx",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (.pptx, or .png/.svg/.pdf for a preview image)"
)
@click.option(
    "--element", "-e", "elements",
    multiple=True,
    type=click.Choice(ELEMENT_CHOICES),
    help="Element to add (repeatable). Defaults to every available element"
)
@click.option("--width", default=1080.0, type=click.FloatRange(min=1), help="Canvas width in pixels")
@click.option("--height", default=1920.0, type=click.FloatRange(min=1), help="Canvas height in pixels")
@click.option("--model", default=None, help="Chat model name (default: deepseek-chat)")
@click.option("--base-url", default=None, help="OpenAI-compatible endpoint base URL")
@click.option(
    "--layout-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding layout constants"
)
@click.option(
    "--save-content",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the extracted content as JSON"
)
@click.pass_context
def generate(
    ctx: click.Context,
    input_path: Optional[Path],
    text: Optional[str],
    output: Path,
    elements: Tuple[str, ...],
    width: float,
    height: float,
    model: Optional[str],
    base_url: Optional[str],
    layout_config: Optional[Path],
    save_content: Optional[Path]
):
    """Extract infographic content from text and draw it."""
    debug = ctx.obj.get("debug", False)
    source_text = _read_source(input_path, text)
    if not source_text:
        console.print("[red]Error: input text is empty[/red]")
        sys.exit(1)

    extractor = _build_extractor(model, base_url)
    layout_engine = _build_layout_engine(layout_config)
    surface = _create_surface(output, width, height)
    session = InfographicSession(extractor, ElementRenderer(surface, layout_engine))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        try:
            task = progress.add_task("🧠 Generating elements...", total=None)
            content = session.generate(source_text)
            console.print(f"✅ Extracted '{content.title}' "
                          f"({', '.join(e.value for e in session.available_elements())})")
            progress.remove_task(task)

            if save_content:
                save_content.write_text(content.model_dump_json(indent=2), encoding="utf-8")
                console.print(f"✅ Saved content to {save_content}")

            task = progress.add_task("🎨 Drawing elements...", total=None)
            rows = _render_elements(session, elements, output)
            progress.remove_task(task)

        except InfocrafticError as e:
            progress.stop()
            console.print(f"[red]❌ {e}[/red]")
            if debug:
                import traceback
                console.print(traceback.format_exc())
            else:
                console.print("Run again with --debug or --log-file for details")
            sys.exit(1)

    _print_summary(output, rows)
    if any(status == "failed" for _, status in rows):
        sys.exit(1)


@cli.command()
@click.option(
    "--input", "-i", "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to input text file (.txt, .md)"
)
@click.option("--text", help="Raw text to analyse instead of --input")
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the content JSON to this file instead of stdout"
)
@click.option("--model", default=None, help="Chat model name (default: deepseek-chat)")
@click.option("--base-url", default=None, help="OpenAI-compatible endpoint base URL")
def extract(
    input_path: Optional[Path],
    text: Optional[str],
    output: Optional[Path],
    model: Optional[str],
    base_url: Optional[str]
):
    """Extract infographic content as JSON without drawing it."""
    source_text = _read_source(input_path, text)
    if not source_text:
        console.print("[red]Error: input text is empty[/red]")
        sys.exit(1)

    extractor = _build_extractor(model, base_url)
    try:
        content = extractor.extract(source_text)
    except InfocrafticError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    payload = content.model_dump_json(indent=2, exclude_none=True)
    if output:
        output.write_text(payload, encoding="utf-8")
        console.print(f"✅ Saved content to {output}")
    else:
        click.echo(payload)


@cli.command()
@click.option(
    "--content", "-c", "content_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Content JSON written by 'extract' or '--save-content'"
)
@click.option(
    "--output", "-o",
    default="infographic.pptx",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (.pptx, or .png/.svg/.pdf for a preview image)"
)
@click.option(
    "--element", "-e", "elements",
    multiple=True,
    type=click.Choice(ELEMENT_CHOICES),
    help="Element to add (repeatable). Defaults to every available element"
)
@click.option("--width", default=1080.0, type=click.FloatRange(min=1), help="Canvas width in pixels")
@click.option("--height", default=1920.0, type=click.FloatRange(min=1), help="Canvas height in pixels")
@click.option(
    "--layout-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding layout constants"
)
def render(
    content_path: Path,
    output: Path,
    elements: Tuple[str, ...],
    width: float,
    height: float,
    layout_config: Optional[Path]
):
    """Draw previously extracted content without calling the endpoint."""
    try:
        content = StructuredContent.model_validate_json(content_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[red]❌ Invalid content file {content_path}: {e}[/red]")
        sys.exit(1)

    layout_engine = _build_layout_engine(layout_config)
    surface = _create_surface(output, width, height)
    session = InfographicSession(ContentExtractor(), ElementRenderer(surface, layout_engine))
    session.load(content)

    rows = _render_elements(session, elements, output)
    _print_summary(output, rows)
    if any(status == "failed" for _, status in rows):
        sys.exit(1)


@cli.command()
@click.option("--width", default=1080.0, type=click.FloatRange(min=1), help="Canvas width in pixels")
@click.option("--height", default=1920.0, type=click.FloatRange(min=1), help="Canvas height in pixels")
@click.option(
    "--layout-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file overriding layout constants"
)
def layout(width: float, height: float, layout_config: Optional[Path]):
    """Show the regions and font sizes computed for a canvas size."""
    engine = _build_layout_engine(layout_config)
    metrics = engine.resolver.from_dimensions(width, height)
    regions = engine.region_planner.plan(metrics)
    fonts = engine.font_planner.plan(metrics)

    console.print(f"[bold]Canvas[/bold] {metrics.width:g}x{metrics.height:g}, "
                  f"scale factor {metrics.scale_factor:.3f}, margin {regions.margin:.1f}")

    region_table = Table(title="Regions")
    for column in ("Region", "x", "y", "width", "height"):
        region_table.add_column(column, style="bold" if column == "Region" else None)
    named = list(regions.sections.items()) + [(f"node {i}", node) for i, node in enumerate(regions.nodes)]
    for name, region in named:
        region_table.add_row(
            name, f"{region.x:.1f}", f"{region.y:.1f}", f"{region.width:.1f}", f"{region.height:.1f}"
        )
    console.print(region_table)

    font_table = Table(title="Font Plan")
    font_table.add_column("Role", style="bold")
    font_table.add_column("Size (px)")
    for role, size in fonts.model_dump().items():
        font_table.add_row(role, f"{size:.1f}")
    console.print(font_table)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

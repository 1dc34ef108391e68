"""slidebind CLI.

Command-line driver exercising the slide layer: pyramid information,
properties, region reads and associated images.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from slidebind import __version__
from slidebind.native import get_default_library
from slidebind.properties import AperioProperties
from slidebind.utils.logging import (
    configure_logging,
    get_logger,
    set_correlation_context,
)
from slidebind.wsi import NativeLibraryError, Slide, SlideError

app = typer.Typer(
    name="slidebind",
    help="slidebind: inspect and read whole-slide images via OpenSlide",
    add_completion=False,
)

SlidePath = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to slide file (.svs, .ndpi, .mrxs, .tiff, ...)",
    ),
]
Verbose = Annotated[
    int,
    typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
]
JsonOutput = Annotated[bool, typer.Option("--json", help="Output as JSON")]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOutput = False) -> None:
    """Show slidebind and libopenslide versions."""
    try:
        openslide_version: str | None = get_default_library().get_version()
    except NativeLibraryError:
        openslide_version = None

    if json_output:
        typer.echo(
            json.dumps({"version": __version__, "openslide": openslide_version})
        )
    else:
        typer.echo(f"slidebind {__version__}")
        typer.echo(f"libopenslide {openslide_version or 'not available'}")


@app.command()
def info(
    slide_path: SlidePath,
    verbose: Verbose = 0,
    json_output: JsonOutput = False,
) -> None:
    """Show vendor, pyramid levels, dimensions and downsample factors."""
    _configure_logging(verbose)
    set_correlation_context(slide=str(slide_path), operation="info")

    try:
        vendor = Slide.detect_vendor(slide_path)
        with Slide(slide_path) as slide:
            metadata = slide.get_metadata()
            best_level = slide.best_level_for_downsample(5.6)
    except SlideError as e:
        _fail(e, json_output)

    levels = [
        {
            "level": level,
            "width": dims.width,
            "height": dims.height,
            "downsample": downsample,
        }
        for level, (dims, downsample) in enumerate(
            zip(metadata.level_dimensions, metadata.level_downsamples, strict=True)
        )
    ]

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "vendor": vendor,
                    "width": metadata.width,
                    "height": metadata.height,
                    "level_count": metadata.level_count,
                    "levels": levels,
                    "mpp_x": metadata.mpp_x,
                    "mpp_y": metadata.mpp_y,
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Vendor: {vendor or 'unknown'}")
    typer.echo(f"Slide has {metadata.level_count} levels")
    typer.echo(f"Slide has dimension {metadata.width} x {metadata.height} at level 0")
    for entry in levels:
        typer.echo(
            f"  level {entry['level']}: {entry['width']} x {entry['height']} "
            f"(downsample {entry['downsample']:g})"
        )
    typer.echo(f"Best level for downsample factor 5.6 is {best_level}")


@app.command()
def properties(
    slide_path: SlidePath,
    aperio: Annotated[
        bool, typer.Option("--aperio", help="Show parsed Aperio fields only")
    ] = False,
    verbose: Verbose = 0,
    json_output: JsonOutput = False,
) -> None:
    """List slide properties."""
    _configure_logging(verbose)
    set_correlation_context(slide=str(slide_path), operation="properties")

    try:
        with Slide(slide_path) as slide:
            props: dict[str, Any] = slide.properties()
        if aperio:
            props = AperioProperties.from_properties(props).available()
    except SlideError as e:
        _fail(e, json_output)

    if json_output:
        typer.echo(json.dumps(props, indent=2, sort_keys=True))
        return

    typer.echo(f"{'Property key':<40} Property value")
    for name in sorted(props):
        typer.echo(f"{name:<40} {props[name]}")


@app.command()
def region(  # noqa: PLR0913
    slide_path: SlidePath,
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Where to write the PNG")
    ],
    row: Annotated[int, typer.Option("--row", help="Top-left row at level 0")] = 0,
    col: Annotated[int, typer.Option("--col", help="Top-left column at level 0")] = 0,
    level: Annotated[int, typer.Option("--level", "-l", help="Pyramid level")] = 0,
    height: Annotated[int, typer.Option("--height", help="Region height")] = 512,
    width: Annotated[int, typer.Option("--width", help="Region width")] = 512,
    verbose: Verbose = 0,
) -> None:
    """Read a region and save it as an image."""
    _configure_logging(verbose)
    set_correlation_context(slide=str(slide_path), operation="region")
    logger = get_logger(__name__)

    try:
        with Slide(slide_path) as slide:
            image = slide.read_region(row, col, level, height, width)
        image.save(output)
    except (SlideError, OSError, ValueError) as e:
        _fail(e, json_output=False)

    logger.info("Region written", path=str(output))
    typer.echo(f"Region is written to {output}")


@app.command()
def associated(
    slide_path: SlidePath,
    output_dir: Annotated[
        Path, typer.Option("--output-dir", "-o", help="Directory for the PNGs")
    ],
    verbose: Verbose = 0,
) -> None:
    """Save every associated image (thumbnail, label, macro) as PNG."""
    _configure_logging(verbose)
    set_correlation_context(slide=str(slide_path), operation="associated")

    try:
        with Slide(slide_path) as slide:
            images = slide.read_associated_images()
        output_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for name, image in images.items():
            dest = output_dir / f"associated_image_{name}.png"
            image.save(dest)
            written.append((name, image, dest))
    except (SlideError, OSError) as e:
        _fail(e, json_output=False)

    if not images:
        typer.echo("Slide has no associated images")
    for name, image, dest in written:
        typer.echo(
            f"Associated image '{name}' has dimension {image.width} x {image.height}, "
            f"written to {dest}"
        )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """slidebind: inspect and read whole-slide images via OpenSlide."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _fail(error: Exception, json_output: bool) -> NoReturn:
    """Report an error and exit with status 1."""
    get_logger(__name__).info("Command failed", error=str(error))
    if json_output:
        typer.echo(json.dumps({"error": str(error)}))
    else:
        typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":  # pragma: no cover
    app()

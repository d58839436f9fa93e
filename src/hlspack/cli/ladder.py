"""CLI command that previews the resolution ladder for a frame size."""

import json

import click

from hlspack.cli.exit_codes import ExitCode
from hlspack.cli.output import error_exit
from hlspack.ladder import (
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
    LadderConstraints,
    generate_ladder,
)
from hlspack.playlist.generator import build_variant


@click.command("ladder")
@click.argument("width", type=click.IntRange(min=1))
@click.argument("height", type=click.IntRange(min=1))
@click.option(
    "--preset",
    type=click.Choice(["low", "medium", "high"]),
    default="medium",
    show_default=True,
    help="Quality preset sizing the adaptive ladder.",
)
@click.option(
    "--mode",
    type=click.Choice(["adaptive", "explicit"]),
    default="adaptive",
    show_default=True,
    help="adaptive picks a preset-sized subset, explicit uses 1080/720/480/360.",
)
@click.option("--min-width", type=click.IntRange(min=1), default=DEFAULT_MIN_WIDTH)
@click.option("--min-height", type=click.IntRange(min=1), default=DEFAULT_MIN_HEIGHT)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def ladder_command(
    width: int,
    height: int,
    preset: str,
    mode: str,
    min_width: int,
    min_height: int,
    json_output: bool,
) -> None:
    """Show the rungs hlspack would encode for a WIDTH x HEIGHT source."""
    try:
        constraints = LadderConstraints(
            mode=mode,
            quality_preset=preset,
            min_width=min_width,
            min_height=min_height,
        )
        ladder = generate_ladder(width, height, constraints)
    except ValueError as e:
        error_exit(str(e), ExitCode.FATAL_ERROR, json_output)

    if json_output:
        rungs = []
        for resolution in ladder:
            variant = build_variant(resolution)
            rungs.append(
                {
                    "name": resolution.name,
                    "width": resolution.width,
                    "height": resolution.height,
                    "bitrate": resolution.bitrate,
                    "bandwidth": variant.bandwidth,
                    "codecs": variant.codec,
                }
            )
        click.echo(json.dumps({"source": f"{width}x{height}", "ladder": rungs}))
        return

    click.echo(f"Ladder for {width}x{height} ({mode}, {preset}):")
    for resolution in ladder:
        variant = build_variant(resolution)
        click.echo(
            f"  {resolution.name:<8} {resolution.width}x{resolution.height:<6} "
            f"{resolution.bitrate:>7}  BANDWIDTH={variant.bandwidth}  "
            f"CODECS={variant.codec}"
        )

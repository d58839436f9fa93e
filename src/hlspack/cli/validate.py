"""CLI command that validates an M3U8 playlist file."""

import json
from pathlib import Path

import click

from hlspack.cli.exit_codes import ExitCode
from hlspack.cli.output import error_exit
from hlspack.playlist.validator import validate_playlist_structure


@click.command("validate")
@click.argument(
    "playlist", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
def validate_command(playlist: Path, json_output: bool) -> None:
    """Check PLAYLIST for HLS conformance problems."""
    try:
        text = playlist.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        error_exit(f"Cannot read {playlist}: {e}", ExitCode.FATAL_ERROR, json_output)

    validation = validate_playlist_structure(text)

    if json_output:
        click.echo(
            json.dumps(
                {
                    "playlist": str(playlist),
                    "valid": validation.valid,
                    "errors": list(validation.errors),
                    "warnings": list(validation.warnings),
                }
            )
        )
    else:
        for error in validation.errors:
            click.echo(f"ERROR: {error}")
        for warning in validation.warnings:
            click.echo(f"WARNING: {warning}")
        status = "valid" if validation.valid else "invalid"
        click.echo(f"{playlist}: {status}")

    if not validation.valid:
        raise SystemExit(ExitCode.FAILURE)

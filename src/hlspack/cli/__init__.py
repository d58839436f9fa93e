"""Command-line interface for hlspack."""

import logging
import tomllib
from pathlib import Path

import click

from hlspack.cli.exit_codes import ExitCode
from hlspack.cli.output import error_exit
from hlspack.config.loader import build_logging_config, get_settings
from hlspack.config.models import LoggingConfig
from hlspack.logging import configure_logging

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def _configure_logging(config: LoggingConfig) -> None:
    """Configure logging once per process."""
    global _logging_configured
    if _logging_configured:
        return
    configure_logging(config)
    _logging_configured = True


@click.group()
@click.version_option(package_name="hlspack")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.hlspack/config.toml).",
)
@click.option(
    "--ffmpeg",
    "ffmpeg_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the ffmpeg executable.",
)
@click.option(
    "--ffprobe",
    "ffprobe_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the ffprobe executable.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    ffmpeg_path: Path | None,
    ffprobe_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """hlspack - Package video files as adaptive-bitrate HLS."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    # Preserve settings injected by tests
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = get_settings(
                config_path,
                ffmpeg_path=ffmpeg_path,
                ffprobe_path=ffprobe_path,
                strict=config_path is not None,
            )
        except (tomllib.TOMLDecodeError, OSError, ValueError) as e:
            error_exit(f"Invalid configuration: {e}", ExitCode.FATAL_ERROR)

    settings = ctx.obj["settings"]
    _configure_logging(
        build_logging_config(
            settings.logging,
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    )


# Defer import to avoid circular dependency
def _register_commands():
    from hlspack.cli.ladder import ladder_command
    from hlspack.cli.package import package_command
    from hlspack.cli.validate import validate_command

    main.add_command(ladder_command)
    main.add_command(package_command)
    main.add_command(validate_command)


_register_commands()

"""CLI command that packages a media file as HLS."""

import logging
from pathlib import Path

import click
from pydantic import ValidationError

from hlspack.cli.exit_codes import ExitCode
from hlspack.cli.output import CLIResult, error_exit, format_result, result_to_dict
from hlspack.config.loader import get_processing_table
from hlspack.config.models import HLSPackSettings
from hlspack.config.processing import ProcessingConfig, load_processing_config
from hlspack.events import EventBus, EventKind, EventLogger, PhaseStartedEvent
from hlspack.exceptions import HLSPackError
from hlspack.executor import FFmpegSegmenter, FFmpegSubtitleExtractor
from hlspack.introspector import FFprobeIntrospector
from hlspack.tools.paths import require_tool
from hlspack.workflow import VideoProcessingOrchestrator

logger = logging.getLogger(__name__)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def build_processing_config(
    config_path: Path | None,
    output_dir: Path | None,
    **overrides,
) -> ProcessingConfig:
    """Merge the [processing] table of the config file with CLI options.

    CLI options that were not given (None) leave the file value in place.

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid.
    """
    table = get_processing_table(config_path)
    return load_processing_config(table, output_base_dir=output_dir, **overrides)


def build_orchestrator(
    settings: HLSPackSettings, bus: EventBus
) -> VideoProcessingOrchestrator:
    """Wire the ffmpeg-backed collaborators into an orchestrator.

    Raises:
        ToolNotFoundError: If ffprobe or ffmpeg cannot be located.
    """
    introspector = FFprobeIntrospector(
        timeout=settings.encoding.probe_timeout, tools=settings.tools
    )
    segmenter = FFmpegSegmenter(
        timeout=settings.encoding.encode_timeout, tools=settings.tools
    )
    subtitle_extractor = FFmpegSubtitleExtractor(
        introspector=introspector,
        timeout=settings.encoding.encode_timeout,
        tools=settings.tools,
    )
    # Fail before the job starts if ffmpeg is missing
    require_tool("ffmpeg", settings.tools)
    return VideoProcessingOrchestrator(
        introspector, segmenter, subtitle_extractor, bus=bus
    )


def _echo_phase(event: PhaseStartedEvent) -> None:
    click.echo(f"==> {event.phase.value}", err=True)


@click.command("package")
@click.argument(
    "source", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output base directory (a job directory is created inside it).",
)
@click.option(
    "--preset",
    type=click.Choice(["low", "medium", "high"]),
    default=None,
    help="Quality preset sizing the ladder (default: medium).",
)
@click.option(
    "--resolution",
    "resolutions",
    multiple=True,
    help="Rung to encode, e.g. 720p. Repeat for several.",
)
@click.option(
    "--video-preset",
    type=click.Choice(
        ["ultrafast", "superfast", "veryfast", "faster", "fast", "medium"]
    ),
    default=None,
    help="x264 speed preset (default: fast).",
)
@click.option(
    "--audio-quality",
    type=click.Choice(["low", "medium", "high"]),
    default=None,
    help="Audio bitrate tier (default: medium).",
)
@click.option(
    "--segment-duration",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Target segment length in seconds (default: 6).",
)
@click.option("--parallel", is_flag=True, help="Encode variants concurrently.")
@click.option(
    "--no-audio-tracks", is_flag=True, help="Do not create alternate audio."
)
@click.option("--no-subtitles", is_flag=True, help="Do not extract subtitles.")
@click.option("--keep-original", is_flag=True, help="Copy the source into the job.")
@click.option("--no-cleanup", is_flag=True, help="Keep temporary files.")
@click.option(
    "--temp-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Scratch directory (default: <job>/.tmp).",
)
@click.option("--job-id", default=None, help="Job directory name (default: random).")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def package_command(
    ctx: click.Context,
    source: Path,
    output_dir: Path | None,
    preset: str | None,
    resolutions: tuple[str, ...],
    video_preset: str | None,
    audio_quality: str | None,
    segment_duration: float | None,
    parallel: bool,
    no_audio_tracks: bool,
    no_subtitles: bool,
    keep_original: bool,
    no_cleanup: bool,
    temp_dir: Path | None,
    job_id: str | None,
    json_output: bool,
) -> None:
    """Package SOURCE as an adaptive-bitrate HLS presentation.

    Exits 0 when every task succeeded, 1 when some variants or tracks
    failed, and 2 when the job could not run.
    """
    settings: HLSPackSettings = ctx.obj["settings"]

    try:
        config = build_processing_config(
            ctx.obj.get("config_path"),
            output_dir,
            quality_preset=preset,
            target_resolutions=list(resolutions) or None,
            video_preset=video_preset,
            audio_quality=audio_quality,
            segment_duration=segment_duration,
            parallel=True if parallel else None,
            extract_audio_tracks=False if no_audio_tracks else None,
            extract_subtitles=False if no_subtitles else None,
            keep_original=True if keep_original else None,
            cleanup_temp=False if no_cleanup else None,
            temp_dir=temp_dir,
        )
    except ValidationError as e:
        error_exit(
            f"Invalid options: {_format_validation_error(e)}",
            ExitCode.FATAL_ERROR,
            json_output,
        )

    bus = EventBus()
    event_logger = EventLogger(bus)
    if not json_output:
        bus.subscribe(EventKind.PHASE_STARTED, _echo_phase)

    try:
        orchestrator = build_orchestrator(settings, bus)
        result = orchestrator.process(source, config, job_id=job_id)
    except HLSPackError as e:
        error_exit(str(e), ExitCode.FATAL_ERROR, json_output)
    except KeyboardInterrupt:
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)
    finally:
        event_logger.close()

    exit_code = ExitCode.SUCCESS if result.success else ExitCode.FAILURE
    if json_output:
        message = (
            "Packaging complete"
            if result.success
            else f"Packaging finished with {len(result.errors)} error(s)"
        )
        cli_result = CLIResult(
            success=result.success,
            message=message,
            data=result_to_dict(result),
            exit_code=exit_code,
        )
        click.echo(cli_result.to_json())
    else:
        click.echo(format_result(result))

    if exit_code != ExitCode.SUCCESS:
        raise SystemExit(exit_code)

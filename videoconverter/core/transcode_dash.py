"""
MPEG-DASH packaging using ffmpeg.
Produces a manifest plus media segments in the manifest's directory.
"""

import logging
from pathlib import Path
from typing import Callable

from videoconverter.core.security_utils import run_tool
from videoconverter.core.error_codes import DirectoryCreateError, TranscodeError
from videoconverter.core.constants import FFMPEG_BIN, DASH_FORMAT

logger = logging.getLogger(__name__)

# (args) -> (exit_status, combined_output)
ToolRunner = Callable[[list[str]], tuple[int, str]]


def build_dash_command(input_path: Path, manifest_path: Path,
                       ffmpeg_bin: str = FFMPEG_BIN) -> list[str]:
    return [
        ffmpeg_bin,
        "-i", str(input_path),
        "-f", DASH_FORMAT,
        str(manifest_path),
    ]


def ensure_output_dir(output_dir: Path):
    """Create output_dir (and parents) if absent."""
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreateError(
            f"Failed to create directory for mpeg-dash files {output_dir}: {e}"
        ) from e


def transcode_to_dash(input_path: Path, manifest_path: Path,
                      runner: ToolRunner | None = None,
                      ffmpeg_bin: str = FFMPEG_BIN) -> str:
    """
    Convert input_path to an MPEG-DASH package at manifest_path.
    Returns the tool's combined output.  Partial output is not removed
    on failure.
    """
    runner = runner or run_tool
    manifest_path = Path(manifest_path)
    ensure_output_dir(manifest_path.parent)

    args = build_dash_command(input_path, manifest_path, ffmpeg_bin)

    try:
        returncode, output = runner(args)
    except OSError as e:
        raise TranscodeError(f"Failed to launch {ffmpeg_bin}: {e}") from e

    if returncode != 0:
        raise TranscodeError(
            f"Failed to convert video to mpeg-dash format (rc={returncode}) "
            f"[outstream: {output}]",
            returncode=returncode,
            output=output,
        )

    logger.info("Converted %s to mpeg-dash: %s", input_path, manifest_path)
    return output

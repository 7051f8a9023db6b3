"""
Video converter task handler.
Runs one task through merge → mpeg-dash transcode → cleanup → commit.
Single attempt: no retries, no rollback.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from videoconverter.core.constants import Stage, ErrorCode
from videoconverter.core.config import AppConfig
from videoconverter.core.error_codes import (
    ConverterError, MalformedTaskError, OutputCreateError, DirectoryCreateError,
    TranscodeError,
)
from videoconverter.core.ledger import Ledger
from videoconverter.core.models import VideoTask, ErrorRecord
from videoconverter.core.task_parse import parse_task
from videoconverter.core.chunk_merge import merge_chunks
from videoconverter.core.transcode_dash import ToolRunner, ensure_output_dir, transcode_to_dash
from videoconverter.core.cleanup import remove_merged_file
from videoconverter.core.security_utils import safe_child_path

logger = logging.getLogger(__name__)

_STAGE_MESSAGES = {
    Stage.DEDUP_CHECK: "Failed to check processed state",
    Stage.MERGE: "Failed to merge chunks",
    Stage.PREPARE_OUTPUT: "Failed to create directory for mpeg-dash files",
    Stage.TRANSCODE: "Failed to convert video to mpeg-dash format",
    Stage.CLEANUP: "Failed to remove non-converted file",
    Stage.COMMIT: "Failed to mark video as processed",
}


class VideoConverter:
    """
    Handles one video task.  The ledger is injected; the tool runner is
    optional and defaults to launching the real ffmpeg.
    """

    def __init__(self, ledger: Ledger, config: AppConfig | None = None,
                 runner: ToolRunner | None = None):
        self.ledger = ledger
        self.config = config or AppConfig()
        self.runner = runner

    # ── Paths ─────────────────────────────────────────────────────────

    def merged_file(self, task: VideoTask) -> Path:
        try:
            return safe_child_path(Path(task.path), self.config.merged_file_name)
        except ValueError as e:
            raise OutputCreateError(f"Refusing to write merged file: {e}") from e

    def output_dir(self, task: VideoTask) -> Path:
        try:
            return safe_child_path(Path(task.path), self.config.output_dir_name)
        except ValueError as e:
            raise DirectoryCreateError(f"Refusing to use mpeg-dash directory: {e}") from e

    def manifest_path(self, task: VideoTask) -> Path:
        output_dir = self.output_dir(task)
        try:
            return safe_child_path(output_dir, self.config.manifest_name)
        except ValueError as e:
            raise TranscodeError(f"Refusing to write manifest: {e}") from e

    # ── Entry point ───────────────────────────────────────────────────

    def handle(self, payload: bytes | str) -> None:
        """
        Process one raw task payload.  Never raises: every outcome is
        reported through the log and the ledger's error table.
        """
        try:
            task = parse_task(payload)
        except MalformedTaskError as e:
            # video_id is unknown, so nothing goes to the ledger
            self._log_error(ErrorRecord(
                video_id=None,
                message=f"Failed to unmarshal task in stage {Stage.PARSE}",
                details=str(e),
                time=_now(),
            ))
            return

        stage = Stage.DEDUP_CHECK
        try:
            if self.ledger.is_processed(task.video_id):
                logger.warning("Video was already processed video_id=%s", task.video_id)
                return

            stage = Stage.MERGE
            merged_file = self.merged_file(task)
            logger.info("Merging chunks video_id=%s path=%s", task.video_id, task.path)
            merge_chunks(task.path, merged_file, self.config.chunk_pattern)

            stage = Stage.PREPARE_OUTPUT
            output_dir = self.output_dir(task)
            ensure_output_dir(output_dir)

            stage = Stage.TRANSCODE
            logger.info("Converting video video_id=%s path=%s", task.video_id, merged_file)
            transcode_to_dash(
                merged_file, self.manifest_path(task),
                runner=self.runner, ffmpeg_bin=self.config.ffmpeg_bin,
            )
            logger.info("Video successfully converted to mpeg-dash video_id=%s path=%s",
                        task.video_id, output_dir)

            stage = Stage.CLEANUP
            logger.info("Deleting non-converted video video_id=%s path=%s",
                        task.video_id, merged_file)
            remove_merged_file(merged_file)

            stage = Stage.COMMIT
            self.ledger.mark_processed(task.video_id)

        except ConverterError as e:
            self.record_failure(task.video_id, self._stage_message(stage, task), e)
            return
        except Exception as e:
            logger.error("Unexpected error in stage %s for video_id=%s: %s",
                         stage, task.video_id, e, exc_info=True)
            self.record_failure(task.video_id,
                                f"[{ErrorCode.UNEXPECTED}] "
                                f"{self._stage_message(stage, task)}", e)
            return

        logger.info("Video was successfully processed video_id=%s", task.video_id)

    # ── Failure reporting ─────────────────────────────────────────────

    def record_failure(self, video_id: int, message: str, error: Exception) -> ErrorRecord:
        """
        Log an error record and append it to the ledger (best effort).
        The ledger write can fail without masking the original error.
        """
        record = ErrorRecord(
            video_id=video_id,
            message=message,
            details=str(error),
            time=_now(),
        )
        self._log_error(record)
        self.ledger.register_error(record.video_id, record.message,
                                   record.details, record.time)
        return record

    @staticmethod
    def _log_error(record: ErrorRecord):
        logger.error("Processing error: %s", json.dumps(record.as_dict(), default=str))

    @staticmethod
    def _stage_message(stage: str, task: VideoTask) -> str:
        return f"{_STAGE_MESSAGES.get(stage, 'Failed to process video')} video_id={task.video_id}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

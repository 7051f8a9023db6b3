"""
Cleanup: delete the intermediate merged file after transcoding.
"""

import logging
from pathlib import Path

from videoconverter.core.error_codes import CleanupError

logger = logging.getLogger(__name__)


def remove_merged_file(merged_file: Path):
    """
    Delete the non-converted merged file.
    A missing file is an error: merge created it moments ago.
    """
    try:
        merged_file.unlink()
    except OSError as e:
        raise CleanupError(f"Failed to remove non-converted file {merged_file}: {e}") from e

    logger.debug("Deleted: %s", merged_file)

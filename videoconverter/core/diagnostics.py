"""
Diagnostics: tool version detection and ledger connectivity.
"""

import logging

from videoconverter.core.security_utils import run_subprocess
from videoconverter.core.constants import FFMPEG_BIN, APP_VERSION
from videoconverter.core.error_codes import PersistenceError

logger = logging.getLogger(__name__)


def get_ffmpeg_version(ffmpeg_bin: str = FFMPEG_BIN) -> str:
    """Return ffmpeg version string, or error message."""
    try:
        result = run_subprocess([ffmpeg_bin, "-version"], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "Unknown"
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def check_ledger(ledger) -> dict:
    """Run a read against the ledger and report whether it answered."""
    try:
        ledger.is_processed(-1)
    except PersistenceError as e:
        return {"reachable": False, "error": str(e)}
    return {"reachable": True, "error": None}


def get_diagnostics(config, ledger=None) -> dict:
    """Gather all diagnostic information."""
    info = {
        "version": APP_VERSION,
        "ffmpeg_version": get_ffmpeg_version(config.ffmpeg_bin),
        "db_backend": config.db_backend,
    }
    if ledger is not None:
        info["ledger"] = check_ledger(ledger)
    return info

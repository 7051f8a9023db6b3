"""
Security utilities for videoconverter.
- Path traversal protection for configured file names
- Safe subprocess execution (argument arrays only)
"""

import re
import subprocess
import pathlib
import logging

from videoconverter.core.constants import UNSAFE_FILENAME_CHARS

logger = logging.getLogger(__name__)


# ── Filename / path safety ────────────────────────────────────────────

def is_plain_filename(name: str) -> bool:
    """True if name is a single path component with no unsafe characters."""
    if not name or name in ('.', '..'):
        return False
    if re.search(UNSAFE_FILENAME_CHARS, name):
        return False
    return pathlib.PurePath(name).name == name


def safe_child_path(root: pathlib.Path, name: str) -> pathlib.Path:
    """
    Join a configured file name onto root.  Enforces that realpath(result)
    stays inside realpath(root).  Raises ValueError otherwise.
    """
    if not is_plain_filename(name):
        raise ValueError(f"Unsafe file name: {name!r}")

    candidate = root / name
    real_root = root.resolve(strict=False)
    real_candidate = candidate.resolve(strict=False)
    if real_root not in real_candidate.parents:
        raise ValueError(f"Path traversal detected: {name!r}")
    return candidate


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str], *, timeout: float | None = None,
                   merge_stderr: bool = False) -> subprocess.CompletedProcess:
    """
    Run an external tool from an argument list, never through a shell.
    Output is captured as text; with merge_stderr, stderr is folded into
    stdout in the order the tool wrote it.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    argv = [str(a) for a in args]
    logger.debug("Running subprocess: %s", ' '.join(argv))
    return subprocess.run(
        argv,
        shell=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
        text=True,
        errors='replace',
        timeout=timeout,
    )


def run_tool(args: list[str]) -> tuple[int, str]:
    """
    Run an external tool to completion with stderr folded into stdout.
    Returns (exit_status, combined_output).  No timeout is applied.
    Launch failures propagate as OSError.
    """
    result = run_subprocess(args, merge_stderr=True)
    return result.returncode, result.stdout or ""

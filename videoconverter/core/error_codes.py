"""
Standardised error handling for videoconverter.
Every pipeline stage raises a subclass of ConverterError; only the task
handler catches them.
"""

from videoconverter.core.constants import ErrorCode


class ConverterError(Exception):
    """Raised when a pipeline stage encounters a known error condition."""

    code = ErrorCode.UNEXPECTED

    def __init__(self, message: str, code: str | None = None):
        self.code = code or self.code
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class MalformedTaskError(ConverterError):
    code = ErrorCode.MALFORMED_TASK


class DiscoveryError(ConverterError):
    code = ErrorCode.CHUNK_DISCOVERY


class OutputCreateError(ConverterError):
    code = ErrorCode.MERGE_OUTPUT_CREATE


class ChunkReadError(ConverterError):
    """A single chunk could not be opened or copied."""

    code = ErrorCode.CHUNK_READ

    def __init__(self, message: str, chunk_path):
        self.chunk_path = chunk_path
        super().__init__(message)


class DirectoryCreateError(ConverterError):
    code = ErrorCode.OUTPUT_DIR_CREATE


class TranscodeError(ConverterError):
    """External transcoder failed to launch or exited non-zero."""

    code = ErrorCode.TRANSCODE

    def __init__(self, message: str, returncode: int | None = None, output: str = ""):
        self.returncode = returncode
        self.output = output
        super().__init__(message)


class CleanupError(ConverterError):
    code = ErrorCode.CLEANUP


class PersistenceError(ConverterError):
    code = ErrorCode.PERSISTENCE

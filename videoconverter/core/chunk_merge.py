"""
Merge raw video chunks into a single file.
Chunks are ordered by the first number in their file name.
"""

import re
import shutil
import logging
from pathlib import Path

from videoconverter.core.constants import (
    CHUNK_PATTERN, CHUNK_NUMBER_PATTERN, NO_SEQUENCE_NUMBER,
)
from videoconverter.core.error_codes import (
    DiscoveryError, OutputCreateError, ChunkReadError,
)

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(CHUNK_NUMBER_PATTERN)


def chunk_sequence_number(chunk: Path | str) -> int:
    """
    Return the first run of digits in the chunk's base name as an int.
    Returns -1 when the name holds no digits.
    """
    m = _NUMBER_RE.search(Path(chunk).name)
    if not m:
        return NO_SEQUENCE_NUMBER
    return int(m.group(0))


def _chunk_sort_key(chunk: Path) -> tuple[int, str]:
    # file name breaks ties so the order never depends on the directory listing
    return chunk_sequence_number(chunk), chunk.name


def find_chunks(directory: Path | str, pattern: str = CHUNK_PATTERN) -> list[Path]:
    """
    List chunk files in directory matching pattern, in merge order.
    Raises DiscoveryError if the directory can't be read or holds no chunks.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise DiscoveryError(f"Chunk directory not found: {directory}")

    try:
        chunks = [p for p in directory.glob(pattern) if p.is_file()]
    except (OSError, ValueError) as e:
        raise DiscoveryError(f"Failed to list chunks in {directory}: {e}") from e

    if not chunks:
        raise DiscoveryError(f"No chunks matching {pattern!r} in {directory}")

    return sorted(chunks, key=_chunk_sort_key)


def merge_chunks(directory: Path | str, output_file: Path | str,
                 pattern: str = CHUNK_PATTERN) -> list[Path]:
    """
    Concatenate every chunk in directory into output_file, in sequence order.
    Creates or truncates output_file.  A partially written output file is
    left in place on failure.
    Returns the chunks in the order they were written.
    """
    chunks = find_chunks(directory, pattern)
    output_file = Path(output_file)

    try:
        out = open(output_file, 'wb')
    except OSError as e:
        raise OutputCreateError(f"Failed to create merged file {output_file}: {e}") from e

    with out:
        for chunk in chunks:
            try:
                with open(chunk, 'rb') as src:
                    shutil.copyfileobj(src, out)
            except OSError as e:
                raise ChunkReadError(f"Failed to copy chunk {chunk}: {e}", chunk) from e

    logger.info("Merged %d chunks into %s", len(chunks), output_file)
    return chunks

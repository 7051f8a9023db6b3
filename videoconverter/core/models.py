"""
Data models (plain dataclasses) for videoconverter.
"""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class VideoTask:
    video_id: int
    path: str                        # directory holding the video's chunks


@dataclass
class ErrorRecord:
    video_id: Optional[int]
    message: str
    details: str = ""
    time: Optional[str] = None       # ISO-8601, UTC

    def as_dict(self) -> dict:
        return asdict(self)

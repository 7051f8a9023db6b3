"""
Inbound task payload decoding.
"""

import json

from videoconverter.core.constants import MIN_VIDEO_ID, MAX_VIDEO_ID
from videoconverter.core.error_codes import MalformedTaskError
from videoconverter.core.models import VideoTask


def parse_task(payload: bytes | str) -> VideoTask:
    """
    Decode a JSON payload {"video_id": <int>, "path": <str>} into a VideoTask.
    Raises MalformedTaskError on anything else.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedTaskError(f"Payload is not valid UTF-8: {e}") from e

    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise MalformedTaskError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedTaskError(f"Payload must be a JSON object, got {type(data).__name__}")

    if 'video_id' not in data:
        raise MalformedTaskError("Payload is missing 'video_id'")
    video_id = data['video_id']
    # bool is an int subclass; "2" is a string — both rejected
    if isinstance(video_id, bool) or not isinstance(video_id, int):
        raise MalformedTaskError(f"'video_id' must be an integer, got {video_id!r}")
    if not MIN_VIDEO_ID <= video_id <= MAX_VIDEO_ID:
        raise MalformedTaskError(f"'video_id' out of range: {video_id}")

    path = data.get('path')
    if not isinstance(path, str) or not path.strip():
        raise MalformedTaskError(f"'path' must be a non-empty string, got {path!r}")

    return VideoTask(video_id=video_id, path=path)


"""YouTube URL helpers.

extract_info is a stub: it checks its argument and returns fixed metadata.
Real scraping is not implemented.
"""

from __future__ import annotations

import re

from confcurate.errors import ValidationError
from confcurate.models import VideoInfo

YOUTUBE_URL_RE = re.compile(r"^https?://(www\.)?(youtube\.com/watch\?v=|youtu\.be/)[\w-]+")
_VIDEO_ID_RE = re.compile(r"(?:v=|youtu\.be/)([\w-]+)")


def validate_url(url: object) -> bool:
    return isinstance(url, str) and YOUTUBE_URL_RE.match(url) is not None


def video_id(url: str) -> str | None:
    """Return the video id of a valid YouTube URL, else None."""
    if not validate_url(url):
        return None
    m = _VIDEO_ID_RE.search(url)
    return m.group(1) if m else None


def extract_info(url: str | None) -> VideoInfo:
    if not url:
        msg = "URL is required"
        raise ValidationError(msg)
    return VideoInfo(
        title="Sample Video Title",
        duration="45 minutes",
        description="Sample video description",
    )

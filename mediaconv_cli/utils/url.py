"""
Utilities for recognizing video URLs and naming downloaded files.
"""

import re
from typing import Optional
from urllib.parse import unquote, urlsplit

from pathvalidate import sanitize_filename

VIDEO_HOST_PATTERN = re.compile(r"(?:^|[/.])(?:youtube\.com|youtu\.be)(?:[/:?#]|$)", re.I)


def is_supported_video_url(candidate: str) -> bool:
    """Returns True if the string looks like a link to a recognized video host."""
    return bool(candidate) and VIDEO_HOST_PATTERN.search(candidate.strip()) is not None


def filename_from_link(link: str, default: str = "audio.mp3") -> str:
    """
    Derives a safe local file name from the last path segment of a link.
    """
    segment = unquote(urlsplit(link).path.rstrip("/").rsplit("/", 1)[-1])
    name = sanitize_filename(segment) if segment else ""
    return name or default


def default_filename(output_format: Optional[str]) -> str:
    if output_format == "mp4":
        return "video.mp4"
    return "audio.mp3"

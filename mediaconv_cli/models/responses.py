"""
Pydantic models for the payloads returned by the conversion backend.
"""

from typing import Any, Optional

from pydantic import BaseModel


class VideoInfo(BaseModel):
    """Lightweight metadata returned by the `/prepare` endpoint."""

    title: str
    duration: float = 0
    thumbnail: Optional[str] = None


class DownloadResponse(BaseModel):
    """Payload returned by the `/download` endpoint on success."""

    download_url: str
    thumbnail_url: Optional[str] = None
    message: str = ""
    debug_info: Any = None

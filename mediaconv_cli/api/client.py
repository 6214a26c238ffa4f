"""
Async client for the conversion backend with streamed transfer progress.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from mediaconv_cli.exceptions import PreviewError, TransferError
from mediaconv_cli.models.responses import DownloadResponse, VideoInfo

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], Any]


class ConverterAPIClient:
    """
    Async client for the conversion backend's form-based JSON API.

    Features:
    - Connection pooling through a lazily created aiohttp session
    - Response bodies are streamed so transfer progress can be reported
    - A total request timeout so a stalled backend cannot hold a job forever
    """

    CHUNK_SIZE = 16384  # 16 KB

    def __init__(
        self,
        base_url: str,
        request_timeout: float = 600.0,
        max_connections: int = 8,
    ):
        """
        Initializes the API client.

        Args:
            base_url: Backend root, e.g. "https://convert.example.com".
            request_timeout: Total seconds allowed per request; 0 disables the limit.
            max_connections: Size of the connection pool.
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(
                    total=self.request_timeout or None, sock_connect=15
                ),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "ConverterAPIClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def build_download_link(self, download_url: str) -> str:
        """Combines a server-relative download path with the configured base."""
        if download_url.startswith(("http://", "https://")):
            return download_url
        return f"{self.base_url}{download_url}"

    async def _read_body(
        self,
        response: aiohttp.ClientResponse,
        on_progress: Optional[ProgressCallback],
    ) -> bytes:
        """Reads a response body chunk by chunk, reporting each chunk."""
        total = response.content_length
        loaded = 0
        chunks = []
        async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
            chunks.append(chunk)
            loaded += len(chunk)
            if on_progress is not None:
                on_progress(loaded, total)
        return b"".join(chunks)

    @staticmethod
    def _extract_detail(body: bytes) -> Optional[str]:
        """Pulls the optional `detail` message out of an error body."""
        try:
            payload = json.loads(body)
        except ValueError:
            return None
        if isinstance(payload, dict) and payload.get("detail"):
            detail = payload["detail"]
            return detail if isinstance(detail, str) else json.dumps(detail)
        return None

    async def post_form(
        self,
        endpoint: str,
        fields: Dict[str, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """
        Posts multipart form fields to an endpoint and decodes the JSON reply.

        Raises:
            TransferError: On network failure, timeout, an HTTP error status or
            an undecodable body.
        """
        await self._initialize_session()

        form = aiohttp.FormData()
        for name, value in fields.items():
            form.add_field(name, value)

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start_time = time.monotonic()
        try:
            async with self._session.post(url, data=form) as r:
                body = await self._read_body(r, on_progress)
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(
                    f"POST /{endpoint} -> {r.status} "
                    f"({len(body)} bytes, {duration_ms:.0f} ms)"
                )

                if r.status >= 400:
                    raise TransferError(
                        f"Backend returned HTTP {r.status} for /{endpoint}",
                        detail=self._extract_detail(body),
                        status=r.status,
                    )
        except asyncio.TimeoutError as e:
            raise TransferError(
                f"Request to /{endpoint} timed out after {self.request_timeout:.0f}s",
                timed_out=True,
            ) from e
        except aiohttp.ClientError as e:
            raise TransferError(f"Request to /{endpoint} failed: {e}") from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise TransferError(
                f"Backend returned invalid JSON for /{endpoint}", status=r.status
            ) from e
        if not isinstance(payload, dict):
            raise TransferError(
                f"Backend returned an unexpected payload for /{endpoint}",
                status=r.status,
            )
        return payload

    # Public API Methods
    async def fetch_video_info(self, video_url: str) -> VideoInfo:
        """
        Fetches preview metadata for a video URL.

        Raises:
            PreviewError: If the lookup fails for any reason.
        """
        try:
            payload = await self.post_form("prepare", {"video_url": video_url})
            return VideoInfo.model_validate(payload)
        except TransferError as e:
            raise PreviewError(f"Could not fetch video information: {e}") from e
        except PydanticValidationError as e:
            raise PreviewError(f"Malformed preview payload: {e}") from e

    async def request_conversion(
        self,
        video_url: str,
        quality: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadResponse:
        """
        Asks the backend to convert a video and waits for the result.

        Raises:
            TransferError: If the request fails or the reply is malformed.
        """
        payload = await self.post_form(
            "download",
            {"video_url": video_url, "quality": quality},
            on_progress=on_progress,
        )
        try:
            return DownloadResponse.model_validate(payload)
        except PydanticValidationError as e:
            raise TransferError(f"Malformed conversion payload: {e}") from e

    async def ping(self) -> int:
        """Returns the HTTP status of the backend root, for diagnostics."""
        await self._initialize_session()
        try:
            async with self._session.get(self.base_url + "/") as r:
                return r.status
        except asyncio.TimeoutError as e:
            raise TransferError("Backend did not answer in time", timed_out=True) from e
        except aiohttp.ClientError as e:
            raise TransferError(f"Could not reach backend: {e}") from e

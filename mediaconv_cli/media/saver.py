"""
Saves converted files produced by the backend to the local output directory.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Set

import aiofiles
import aiohttp

from mediaconv_cli.exceptions import SaveError
from mediaconv_cli.models.stats import SessionStats
from mediaconv_cli.utils.url import filename_from_link

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_workers: int = 8) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for file downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers,
            ttl_dns_cache=600,  # 10 minutes
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created file download pool with limit={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared file download pool closed.")


def _unique_path(path: Path, taken: Optional[Set[Path]] = None) -> Path:
    """Appends ' (n)' to the stem until the path is neither on disk nor taken."""
    taken = taken or set()
    candidate = path
    counter = 0
    while candidate in taken or candidate.exists():
        counter += 1
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
    return candidate


class FileSaver:
    """Streams a finished conversion to disk, the way a browser saves a link."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        output_dir: str | Path = ".",
        default_name: str = "audio.mp3",
        stats: SessionStats | None = None,
        max_workers: int = 8,
    ):
        self.output_dir = Path(output_dir)
        self.default_name = default_name
        self.stats = stats
        self.max_workers = max_workers
        # Destinations being written by in-flight saves
        self._reserved: Set[Path] = set()
        self._reserve_lock = asyncio.Lock()

    async def save(self, link: str, filename: Optional[str] = None) -> Path:
        """
        Downloads `link` into the output directory.

        Args:
            link: Absolute URL of the converted file.
            filename: Overrides the name derived from the link.

        Returns:
            The path of the written file.

        Raises:
            SaveError: If the file cannot be fetched or written.
        """
        name = filename or filename_from_link(link, self.default_name)
        await asyncio.to_thread(self.output_dir.mkdir, parents=True, exist_ok=True)
        destination = await self._reserve(self.output_dir / name)
        partial_path = destination.with_name(destination.name + ".part")

        bytes_written = 0
        try:
            session = await get_connection_pool(self.max_workers)
            async with session.get(link, allow_redirects=True) as response:
                response.raise_for_status()
                async with aiofiles.open(partial_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_written += len(chunk)
            await asyncio.to_thread(os.replace, partial_path, destination)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await asyncio.to_thread(self._discard, partial_path)
            raise SaveError(f"Could not save '{name}': {e}") from e
        finally:
            self._reserved.discard(destination)

        if self.stats:
            self.stats.record_saved_file(bytes_written)
        log.debug(f"Saved {bytes_written} bytes to '{destination}'")
        return destination

    async def _reserve(self, path: Path) -> Path:
        async with self._reserve_lock:
            destination = await asyncio.to_thread(
                _unique_path, path, set(self._reserved)
            )
            self._reserved.add(destination)
        return destination

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log.debug(f"Could not remove partial file '{path}': {e}")

"""
castcompat Client - for media front ends that check files and play transcodes

Usage:
    from castcompat.client import CastCompatClient

    client = CastCompatClient("http://localhost:8765")

    info = await client.get_compatibility("Movies/movie.mkv")
    if not info["compatible"]:
        async for chunk in client.stream("Movies/movie.mkv"):
            ...
"""

import logging
from typing import Optional, Dict, Any, AsyncIterator

import httpx

logger = logging.getLogger(__name__)


class CastCompatClient:
    """HTTP client for a castcompat server."""

    def __init__(
        self,
        base_url: str = "http://localhost:8765",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"X-API-Key": api_key} if api_key else {}
        self._transport = transport

    def _client(self, timeout: Optional[Any] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout if timeout is None else timeout,
            transport=self._transport,
        )

    async def health_check(self) -> bool:
        """Check if the server is healthy."""
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/health")
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"Health check failed: {e}")
            return False

    async def get_compatibility(self, path: str) -> Dict[str, Any]:
        """Classify a file; path is relative to the server's media root."""
        async with self._client() as client:
            response = await client.get("/api/compatibility", params={"path": path})
            response.raise_for_status()
            return response.json()

    async def list_directory(self, directory: str = "", compat: bool = False) -> Dict[str, Any]:
        """List a library directory, optionally classifying every file."""
        async with self._client() as client:
            response = await client.get(
                "/api/library",
                params={"dir": directory, "compat": str(compat).lower()}
            )
            response.raise_for_status()
            return response.json()

    async def clear_cache(self) -> int:
        """Drop the server's probe cache. Returns the number of entries removed."""
        async with self._client() as client:
            response = await client.delete("/api/cache")
            response.raise_for_status()
            return response.json()["cleared"]

    async def stream(
        self,
        path: str,
        subtitles: bool = False,
        audio_track: Optional[int] = None,
        chunk_size: int = 65536
    ) -> AsyncIterator[bytes]:
        """
        Yield the transcoded stream of path.

        Stopping iteration closes the connection, which stops the transcode
        on the server.
        """
        params: Dict[str, Any] = {"path": path, "subtitles": str(subtitles).lower()}
        if audio_track is not None:
            params["audio_track"] = audio_track

        # Transcodes can pause between chunks; only bound the connect phase
        async with self._client(timeout=httpx.Timeout(self.timeout, read=None)) as client:
            async with client.stream("GET", "/api/stream", params=params) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes(chunk_size):
                    yield chunk

    def get_compatibility_sync(self, path: str) -> Dict[str, Any]:
        """Synchronous version of get_compatibility."""
        with httpx.Client(base_url=self.base_url, headers=self.headers, timeout=self.timeout) as client:
            response = client.get("/api/compatibility", params={"path": path})
            response.raise_for_status()
            return response.json()

"""Chunked streaming upload of a single file."""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

import httpx

from zf_folder_uploader.api_client import (
    TOKEN_HEADER,
    AuthenticationError,
    RemoteGalleryClient,
    ServerError,
    ZenfolioAPIError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024


async def iter_file_chunks(
    fh: BinaryIO, chunk_size: int = CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Yield an open file's remaining contents in fixed-size chunks."""
    # Read in a worker thread to avoid blocking the event loop
    while chunk := await asyncio.to_thread(fh.read, chunk_size):
        yield chunk


class StreamingUploader:
    """Streams one file's bytes to a gallery upload URL."""

    def __init__(
        self, api_client: RemoteGalleryClient, chunk_size: int = CHUNK_SIZE
    ) -> None:
        self.api_client = api_client
        self.chunk_size = chunk_size

    async def upload(
        self, path: Path, size: int, url: str, content_type: str
    ) -> str:
        """Upload a file with a streamed POST request.

        The file handle and the response stream are released on every exit
        path. No retry is attempted here.

        Args:
            path: Local file path
            size: File size in bytes, sent as Content-Length
            url: Upload target URL including the filename parameter
            content_type: MIME type of the file

        Returns:
            Remote photo ID (the full response body)

        Raises:
            AuthenticationError: If the session token is rejected
            ServerError: If the server returns a 5xx status
            ZenfolioAPIError: For other HTTP error statuses
            httpx.RequestError: On transport failure
            OSError: If the file cannot be read
        """
        headers = {
            TOKEN_HEADER: self.api_client.token or "",
            "Content-Type": content_type,
            "Content-Length": str(size),
        }

        with path.open("rb") as fh:
            async with self.api_client.http.stream(
                "POST",
                url,
                content=iter_file_chunks(fh, self.chunk_size),
                headers=headers,
            ) as response:
                body = await response.aread()

        text = body.decode("utf-8", errors="replace").strip()
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Upload of {path.name} not authorized: {text[:200]}")
        if response.status_code >= 500:
            raise ServerError(f"Server error {response.status_code}: {text[:200]}")
        if response.status_code >= 400:
            raise ZenfolioAPIError(
                f"Upload of {path.name} failed with {response.status_code}: {text[:200]}"
            )
        if not text:
            raise ZenfolioAPIError(f"Upload of {path.name} returned no photo ID")

        logger.debug(f"Streamed {size} byte(s) of {path.name}, photo ID: {text}")
        return text

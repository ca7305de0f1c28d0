"""
Downloads source PDFs from the URL stored on a document record.
"""

import logging
from typing import Optional

import httpx

from signdesk.utils.exceptions import SourceFetchFailedError

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """Fetches raw document bytes over HTTP."""

    def __init__(self, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> bytes:
        """
        Fetch the bytes behind a document URL.

        Raises:
            SourceFetchFailedError: on any non-2xx response or transport failure
        """
        if not url:
            raise SourceFetchFailedError(url or "<empty>", "document has no original URL")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Source fetch returned {e.response.status_code} for {url}")
                raise SourceFetchFailedError(url, f"HTTP {e.response.status_code}")
            except httpx.HTTPError as e:
                logger.error(f"Source fetch failed for {url}: {e}")
                raise SourceFetchFailedError(url, str(e) or type(e).__name__)

        logger.info(f"Fetched source document from {url}: {len(response.content)} bytes")
        return response.content

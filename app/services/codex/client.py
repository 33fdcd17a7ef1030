import logging
from typing import Any, AsyncIterable, Optional

import aiohttp

from app.core.config import settings

logger = logging.getLogger(__name__)


class CodexApiError(Exception):
    """Exception raised for Codex storage API errors."""
    def __init__(self, message: str, status_code: int, response_body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class CodexClient:
    """Thin client for the Codex storage node's data upload endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        upload_path: Optional[str] = None,
        connect_timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.CODEX_URL).rstrip("/")
        self.upload_path = upload_path or settings.CODEX_UPLOAD_PATH
        if connect_timeout is None:
            connect_timeout = settings.CODEX_CONNECT_TIMEOUT_SECONDS
        # No total or read timeout: the body is produced by yt-dlp as it downloads
        self.timeout = aiohttp.ClientTimeout(total=None, connect=connect_timeout, sock_read=None)

    @property
    def upload_url(self) -> str:
        path = self.upload_path if self.upload_path.startswith("/") else f"/{self.upload_path}"
        return f"{self.base_url}{path}"

    async def upload(self, body: AsyncIterable[bytes]) -> str:
        """
        Stream ``body`` to Codex and return the content identifier it replies with.

        Args:
            body: Async iterable of byte chunks, sent with chunked transfer encoding

        Returns:
            The response body decoded as text, otherwise unchanged

        Raises:
            CodexApiError: On transport errors, non-2xx responses or an empty reply
        """
        url = self.upload_url
        headers = {"Content-Type": "application/octet-stream"}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, data=body, headers=headers) as response:
                    payload = await response.read()
                    if response.status < 200 or response.status >= 300:
                        raise CodexApiError(
                            f"Codex upload failed with status {response.status}",
                            status_code=response.status,
                            response_body=payload.decode("utf-8", errors="replace"),
                        )
        except aiohttp.ClientError as e:
            raise CodexApiError(f"HTTP client error: {str(e)}", status_code=0)

        cid = payload.decode("utf-8", errors="replace")
        if not cid.strip():
            raise CodexApiError("Codex returned an empty identifier", status_code=response.status)

        logger.info("Codex stored upload as cid=%s", cid)
        return cid

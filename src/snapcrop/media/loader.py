from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when source bytes cannot be decoded as an image."""


class SourceLoader:
    """Read raw source bytes from local paths or http(s) URLs."""

    def __init__(
        self,
        timeout: float = 20.0,
        retries: int = 2,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self.retries = retries
        self.client = client

    def read_bytes(self, source: str) -> bytes:
        if self._is_remote(source):
            return self._download(source)
        return Path(source).read_bytes()

    def _download(self, url: str) -> bytes:
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                logger.debug("Downloading image %s (attempt %s)", url, attempt + 1)
                if self.client is not None:
                    return self._fetch(self.client, url)
                with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                    return self._fetch(client, url)
            except httpx.HTTPError as exc:
                logger.warning("Failed to download %s: %s", url, exc)
                last_error = exc
        assert last_error is not None
        raise RuntimeError(f"Unable to download image {url}") from last_error

    @staticmethod
    def _fetch(client: httpx.Client, url: str) -> bytes:
        response = client.get(url)
        response.raise_for_status()
        return response.content

    @staticmethod
    def _is_remote(source: str) -> bool:
        return source.lower().startswith(("http://", "https://"))


def decode_image(data: bytes) -> Image.Image:
    """Decode *data* into a 3-channel RGB image."""

    try:
        with Image.open(BytesIO(data)) as opened:
            return opened.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"Failed to decode image: {exc}") from exc

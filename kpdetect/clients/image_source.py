"""
Image acquisition adapters.

One interface, one implementation per place an image can live:
- LocalImageSource: file path, decoded with OpenCV
- HttpImageSource: http(s) URL fetched with httpx, decoded with OpenCV

Both return an RGBA PixelBuffer and raise AcquisitionError on any failure.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import cv2
import httpx
import numpy as np

from kpdetect.core.exceptions import AcquisitionError
from kpdetect.services.preprocess import PixelBuffer


logger = logging.getLogger(__name__)


def to_rgba(img: np.ndarray) -> np.ndarray:
    """Normalize an OpenCV decode (gray, BGR or BGRA) to RGBA."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise AcquisitionError(f'Unsupported channel count: {channels}')


def decode_image_bytes(data: bytes, source: str = 'image') -> PixelBuffer:
    """
    Decode JPEG/PNG/etc. bytes into an RGBA pixel buffer.

    Raises:
        AcquisitionError: If bytes are empty or not a decodable image
    """
    if not data:
        raise AcquisitionError(f'Empty image data from {source}')

    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise AcquisitionError(f'Failed to decode image from {source}')

    if img.dtype != np.uint8:
        # 16-bit PNG/TIFF
        img = cv2.convertScaleAbs(img, alpha=255.0 / 65535.0)

    return PixelBuffer(to_rgba(img))


class ImageSource(ABC):
    """Loads an image identified by a path or URL into a PixelBuffer."""

    @abstractmethod
    async def load(self, source: str) -> PixelBuffer: ...


class LocalImageSource(ImageSource):
    """Reads images from the local filesystem."""

    async def load(self, source: str) -> PixelBuffer:
        path = Path(source)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AcquisitionError(f'Cannot read image {path}: {e}') from e

        pixels = await asyncio.to_thread(decode_image_bytes, data, str(path))
        logger.debug(f'Loaded {path}: {pixels.width}x{pixels.height}')
        return pixels


class HttpImageSource(ImageSource):
    """Fetches images over HTTP(S)."""

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        """
        Args:
            timeout: Request timeout in seconds
            client: Optional shared client (not closed by this source)
        """
        self.timeout = timeout
        self._client = client

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        return response.content

    async def load(self, source: str) -> PixelBuffer:
        try:
            if self._client is not None:
                data = await self._fetch(self._client, source)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    data = await self._fetch(client, source)
        except httpx.HTTPError as e:
            raise AcquisitionError(f'Cannot fetch image {source}: {e}') from e

        pixels = await asyncio.to_thread(decode_image_bytes, data, source)
        logger.debug(f'Fetched {source}: {pixels.width}x{pixels.height}, {len(data)} bytes')
        return pixels


def resolve_image_source(source: str, timeout: float = 30.0) -> ImageSource:
    """Pick the adapter for a source identifier by its scheme."""
    if source.lower().startswith(('http://', 'https://')):
        return HttpImageSource(timeout=timeout)
    return LocalImageSource()

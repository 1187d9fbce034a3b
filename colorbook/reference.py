"""
Reference (line-art) layer loading.

The line art arrives as an encoded raster of arbitrary size from an external
image source. It is decoded, flattened onto white, and resampled to the
canvas size. Until that completes the layer is transparent and its status
says so.
"""

import asyncio
import base64
import binascii
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union
import numpy as np
import cv2

from .errors import ReferenceLoadError
from .models import CANVAS_SIZE, PixelBuffer

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, str, os.PathLike]


class ReferenceStatus(Enum):
    """Load state of the reference layer."""
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def image_from_base64(base64_string: str) -> bytes:
    """Decode a base64 image string (data URL prefix allowed) to raw bytes."""
    if "," in base64_string:
        base64_string = base64_string.split(",", 1)[1]
    try:
        return base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReferenceLoadError(f"Invalid base64 image data: {e}") from e


def decode_image(data: bytes, size: int = CANVAS_SIZE) -> np.ndarray:
    """
    Decode an encoded raster into an opaque RGBA array of size x size.

    Transparent areas are composited onto white so that they read as
    background, never as line.

    Args:
        data: Encoded image bytes (PNG, JPEG, ...)
        size: Output width and height

    Returns:
        RGBA uint8 array (size, size, 4)

    Raises:
        ReferenceLoadError: If the bytes cannot be decoded or converted
    """
    if not data:
        raise ReferenceLoadError("Image data is empty")

    try:
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        if image is None:
            raise ReferenceLoadError("Could not decode image data")
        return _to_rgba(image, size)
    except cv2.error as e:
        raise ReferenceLoadError(f"Could not process image data: {e}") from e


def _to_rgba(image: np.ndarray, size: int) -> np.ndarray:
    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = cv2.normalize(image, None, alpha=0, beta=255, norm_type=cv2.NORM_MINMAX).astype(np.uint8)

    if image.ndim == 2:
        rgb = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    elif image.shape[2] == 4:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA).astype(np.float32)
        alpha = rgba[:, :, 3:4] / 255.0
        rgb = np.rint(rgba[:, :, :3] * alpha + 255.0 * (1.0 - alpha)).astype(np.uint8)
    else:
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    height, width = rgb.shape[:2]
    if (width, height) != (size, size):
        shrinking = width > size or height > size
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        rgb = cv2.resize(rgb, (size, size), interpolation=interpolation)

    out = np.empty((size, size, 4), dtype=np.uint8)
    out[:, :, :3] = rgb
    out[:, :, 3] = 255
    return out


def read_source(source: ImageSource) -> bytes:
    """
    Get encoded image bytes from raw bytes, a file path or a base64 string.

    Raises:
        ReferenceLoadError: If the source cannot be read
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, os.PathLike):
        try:
            return Path(source).read_bytes()
        except OSError as e:
            raise ReferenceLoadError(f"Could not read image file {source}: {e}") from e
    if isinstance(source, str):
        return image_from_base64(source)
    raise ReferenceLoadError(f"Unsupported image source type: {type(source).__name__}")


class ReferenceLayer:
    """
    Line-art layer with an explicit load status.

    The buffer is all-zero (transparent) until a load succeeds and is never
    modified by strokes or fills.

    Example:
        >>> layer = ReferenceLayer()
        >>> layer.load_path(Path("lineart.png"))
        >>> layer.status
        <ReferenceStatus.READY: 'ready'>
    """

    def __init__(self, size: int = CANVAS_SIZE):
        self.size = size
        self.buffer = PixelBuffer.empty(size)
        self.status = ReferenceStatus.EMPTY
        self.error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status == ReferenceStatus.READY

    def load(self, source: ImageSource):
        """Synchronously decode and publish an image source."""
        self.status = ReferenceStatus.LOADING
        try:
            pixels = decode_image(read_source(source), self.size)
        except BaseException as e:
            self._fail(e)
            raise
        self._publish(pixels)

    def load_bytes(self, data: bytes):
        self.load(data)

    def load_base64(self, text: str):
        self.load(text)

    def load_path(self, path: Union[str, os.PathLike]):
        self.load(Path(path))

    async def load_async(self, source: ImageSource):
        """
        Load an image source without blocking the event loop.

        The status is LOADING from the moment this is called. Decoding runs
        in the loop's default executor; the buffer is published on the loop.
        A load that is cancelled or errors out leaves the layer FAILED.
        """
        self.status = ReferenceStatus.LOADING
        loop = asyncio.get_running_loop()
        try:
            pixels = await loop.run_in_executor(None, self._decode, source)
        except BaseException as e:
            self._fail(e)
            raise
        self._publish(pixels)

    def boundary_source(self) -> PixelBuffer:
        """
        Buffer the fill engine classifies boundaries against.

        Fully transparent (no boundaries anywhere) until a load succeeds.
        """
        return self.buffer

    def reset(self):
        """Return to the empty state."""
        self.buffer = PixelBuffer.empty(self.size)
        self.status = ReferenceStatus.EMPTY
        self.error = None

    def _decode(self, source: ImageSource) -> np.ndarray:
        return decode_image(read_source(source), self.size)

    def _publish(self, pixels: np.ndarray):
        self.buffer = PixelBuffer(pixels)
        self.status = ReferenceStatus.READY
        self.error = None
        logger.info(f"Reference layer ready ({self.size}x{self.size})")

    def _fail(self, error: BaseException):
        self.buffer = PixelBuffer.empty(self.size)
        self.status = ReferenceStatus.FAILED
        self.error = str(error) or type(error).__name__
        logger.error(f"Reference layer failed to load: {self.error}")

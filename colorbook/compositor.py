"""
Layer compositing for the live view and for export.

The reference (line-art) layer sits above the drawing layer with a multiply
blend: dark lines darken whatever color is under them, white leaves it as is.
"""

import io
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Union
import numpy as np
from PIL import Image

from .errors import ExportError
from .models import PixelBuffer

logger = logging.getLogger(__name__)


def multiply_blend(drawing: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """
    Channel-wise multiply of two RGB arrays, normalized to 0-255.

    out = round(drawing * reference / 255)

    Args:
        drawing: uint8 array (..., 3)
        reference: uint8 array (..., 3)

    Returns:
        uint8 array of the same shape
    """
    product = drawing.astype(np.uint32) * reference.astype(np.uint32)
    return ((product + 127) // 255).astype(np.uint8)


def encode_png(pixels: np.ndarray) -> bytes:
    """
    Encode an RGBA array as PNG bytes.

    Raises:
        ExportError: If the array cannot be encoded
    """
    try:
        image = Image.fromarray(np.ascontiguousarray(pixels))
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
    except (ValueError, TypeError, OSError) as e:
        raise ExportError(f"PNG encoding failed: {e}") from e
    return buffer.getvalue()


@dataclass
class ExportArtifact:
    """
    Flattened image ready for delivery.

    Attributes:
        filename: Timestamped file name, e.g. "my-doodle-1700000000000.png"
        data: Encoded image bytes
        width: Image width in pixels
        height: Image height in pixels
        created_at_ms: Generation time (milliseconds since the epoch)
        mime_type: MIME type of data
    """
    filename: str
    data: bytes
    width: int
    height: int
    created_at_ms: int
    mime_type: str = "image/png"

    def to_dict(self) -> Dict[str, Any]:
        """Describe the artifact without its payload."""
        return {
            "filename": self.filename,
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
            "size_bytes": len(self.data),
            "created_at_ms": self.created_at_ms,
        }


class LayerCompositor:
    """
    Merges the drawing buffer and the reference buffer.

    live_view() renders the overlay at the configured opacity for display;
    flatten() and export() produce the full-opacity result. Neither
    writes to the input buffers.
    """

    def __init__(self, overlay_opacity: float = 0.9, export_prefix: str = "my-doodle"):
        """
        Initialize compositor.

        Args:
            overlay_opacity: Opacity of the line-art overlay in the live view
            export_prefix: File name prefix for exported images
        """
        if not (0.0 <= overlay_opacity <= 1.0):
            raise ValueError(f"overlay_opacity must be 0.0-1.0, got {overlay_opacity}")
        self.overlay_opacity = overlay_opacity
        self.export_prefix = export_prefix

    def live_view(self, drawing: PixelBuffer, reference: PixelBuffer) -> np.ndarray:
        """
        Render the on-screen view.

        The overlay is multiplied onto the drawing and mixed in at the
        overlay opacity, scaled by the reference's own alpha so an
        unloaded (transparent) reference shows the drawing unchanged.

        Returns:
            Opaque RGBA uint8 array (H, W, 4)
        """
        _check_sizes(drawing, reference)
        base = drawing.pixels[:, :, :3].astype(np.float32)
        multiplied = multiply_blend(drawing.pixels[:, :, :3], reference.pixels[:, :, :3]).astype(np.float32)

        alpha = (reference.pixels[:, :, 3:4].astype(np.float32) / 255.0) * self.overlay_opacity
        mixed = base * (1.0 - alpha) + multiplied * alpha

        out = np.empty_like(drawing.pixels)
        out[:, :, :3] = np.clip(np.rint(mixed), 0, 255).astype(np.uint8)
        out[:, :, 3] = 255
        return out

    def flatten(self, drawing: PixelBuffer, reference: PixelBuffer) -> np.ndarray:
        """
        Multiply the reference onto the drawing at full opacity.

        Returns:
            RGBA uint8 array (H, W, 4) with alpha forced to 255
        """
        _check_sizes(drawing, reference)
        out = np.empty_like(drawing.pixels)
        out[:, :, :3] = multiply_blend(drawing.pixels[:, :, :3], reference.pixels[:, :, :3])
        out[:, :, 3] = 255
        return out

    def export(
        self,
        drawing: PixelBuffer,
        reference: PixelBuffer,
        now: Optional[float] = None,
    ) -> ExportArtifact:
        """
        Flatten both layers and encode them as PNG.

        Args:
            drawing: Drawing buffer
            reference: Loaded line-art buffer
            now: Timestamp in seconds (defaults to the current time)

        Returns:
            ExportArtifact with a timestamped file name

        Raises:
            ExportError: If encoding fails
        """
        flattened = self.flatten(drawing, reference)
        created_at_ms = int((time.time() if now is None else now) * 1000)

        try:
            data = encode_png(flattened)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            raise

        artifact = ExportArtifact(
            filename=f"{self.export_prefix}-{created_at_ms}.png",
            data=data,
            width=drawing.width,
            height=drawing.height,
            created_at_ms=created_at_ms,
        )
        logger.info(f"Exported {artifact.filename} ({len(data)} bytes)")
        return artifact


def save_artifact(artifact: ExportArtifact, directory: Union[str, Path]) -> Path:
    """
    Write an exported image into a directory.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / artifact.filename
    path.write_bytes(artifact.data)
    logger.info(f"Saved export to: {path}")
    return path


def _check_sizes(drawing: PixelBuffer, reference: PixelBuffer):
    if drawing.size != reference.size:
        raise ValueError(
            f"drawing {drawing.size} and reference {reference.size} sizes differ"
        )

"""
Boundary-aware flood fill.

The drawing buffer is filled while the reference (line-art) buffer decides
where the fill stops. A reference pixel is a boundary when its
channel-average luminance is below the threshold; boundaries are never
colored and never expanded through.

The classification is binary: there is no tolerance band, so a soft
anti-aliased edge whose pixels sit at or above the threshold lets the fill
leak through.
"""

import logging
from dataclasses import dataclass
from typing import Tuple, Dict, Any, Optional
import numpy as np

from .models import PixelBuffer, Rgb, to_hex

logger = logging.getLogger(__name__)

DEFAULT_BOUNDARY_THRESHOLD = 200


def boundary_mask(reference: PixelBuffer, threshold: int = DEFAULT_BOUNDARY_THRESHOLD) -> np.ndarray:
    """
    Classify reference pixels as boundary / non-boundary.

    A pixel is a boundary if (R + G + B) / 3 < threshold. Fully transparent
    pixels carry no line art and are never boundaries, so a reference that
    has not been populated yet leaves the whole canvas fillable.

    Args:
        reference: Line-art buffer
        threshold: Luminance threshold (0-255)

    Returns:
        Boolean mask (H, W), True for boundary pixels
    """
    rgb_sum = reference.pixels[:, :, :3].astype(np.uint16).sum(axis=2)
    dark = rgb_sum < 3 * threshold
    return dark & (reference.pixels[:, :, 3] > 0)


@dataclass
class FillResult:
    """
    Outcome of one bucket fill.

    Attributes:
        seed: (x, y) seed in buffer space
        color: Fill color
        filled_pixels: Number of pixels written
        reason: "filled", "seed_on_boundary" or "out_of_bounds"
        bbox: (x1, y1, x2, y2) of the filled region, inclusive, if any
    """
    seed: Tuple[int, int]
    color: Rgb
    filled_pixels: int
    reason: str = "filled"
    bbox: Optional[Tuple[int, int, int, int]] = None

    @property
    def changed(self) -> bool:
        return self.filled_pixels > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "seed": {"x": int(self.seed[0]), "y": int(self.seed[1])},
            "color": to_hex(self.color),
            "filled_pixels": int(self.filled_pixels),
            "reason": self.reason,
            "bbox": list(self.bbox) if self.bbox is not None else None,
        }


class FloodFillEngine:
    """
    Iterative 4-connected flood fill guided by a reference buffer.

    Region growth uses an explicit work list and a dense visited array
    indexed by y * width + x, so regions as large as the whole buffer are
    handled without recursion. The region is computed first and then
    written to the drawing buffer in one step.

    Example:
        >>> engine = FloodFillEngine()
        >>> result = engine.fill(drawing, reference, (450, 450), (255, 0, 0))
        >>> result.filled_pixels
        10000
    """

    def __init__(self, threshold: int = DEFAULT_BOUNDARY_THRESHOLD):
        """
        Initialize engine.

        Args:
            threshold: Luminance below which a reference pixel is a boundary
        """
        if not (0 <= threshold <= 255):
            raise ValueError(f"threshold must be between 0 and 255, got {threshold}")
        self.threshold = threshold

    def region(self, reference: PixelBuffer, seed: Tuple[int, int]) -> np.ndarray:
        """
        Compute the set of pixels reachable from the seed.

        Args:
            reference: Boundary oracle
            seed: (x, y) in buffer space

        Returns:
            Boolean mask (H, W), True for pixels to be filled
        """
        x, y = int(seed[0]), int(seed[1])
        if not reference.contains(x, y):
            return np.zeros((reference.height, reference.width), dtype=bool)

        return self._grow(boundary_mask(reference, self.threshold), (x, y))

    def _grow(self, blocked: np.ndarray, seed: Tuple[int, int]) -> np.ndarray:
        height, width = blocked.shape
        x, y = seed
        passable = bytearray((~blocked).astype(np.uint8).tobytes())
        visited = bytearray(width * height)

        total = width * height
        last_col = width - 1
        stack = [y * width + x]

        while stack:
            idx = stack.pop()
            if visited[idx] or not passable[idx]:
                continue

            visited[idx] = 1
            col = idx % width

            if col < last_col:
                stack.append(idx + 1)
            if col > 0:
                stack.append(idx - 1)
            if idx + width < total:
                stack.append(idx + width)
            if idx >= width:
                stack.append(idx - width)

        return np.frombuffer(bytes(visited), dtype=np.uint8).reshape(height, width).astype(bool)

    def fill(
        self,
        drawing: PixelBuffer,
        reference: PixelBuffer,
        seed: Tuple[int, int],
        color: Rgb,
    ) -> FillResult:
        """
        Fill the region around the seed with a solid, opaque color.

        The drawing buffer is left untouched when the seed is a boundary
        pixel or lies outside the buffer.

        Args:
            drawing: Buffer to color (mutated in place)
            reference: Line-art buffer (read only)
            seed: (x, y) in buffer space
            color: RGB fill color

        Returns:
            FillResult describing what was written
        """
        if drawing.size != reference.size:
            raise ValueError(
                f"drawing {drawing.size} and reference {reference.size} sizes differ"
            )

        seed = (int(seed[0]), int(seed[1]))
        color = tuple(int(c) for c in color)

        if not drawing.contains(*seed):
            logger.debug(f"Fill seed {seed} outside buffer")
            return FillResult(seed=seed, color=color, filled_pixels=0, reason="out_of_bounds")

        blocked = boundary_mask(reference, self.threshold)
        if blocked[seed[1], seed[0]]:
            logger.debug(f"Fill seed {seed} is a boundary pixel")
            return FillResult(seed=seed, color=color, filled_pixels=0, reason="seed_on_boundary")

        region = self._grow(blocked, seed)
        drawing.pixels[region] = (*color, 255)

        ys, xs = np.nonzero(region)
        count = int(xs.size)
        bbox = (int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max()))

        logger.info(f"Filled {count} pixels from {seed} with {to_hex(color)}")
        return FillResult(seed=seed, color=color, filled_pixels=count, bbox=bbox)

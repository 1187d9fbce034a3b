"""
Freehand brush and eraser strokes.

A stroke is a sequence of mapped buffer points. Each new point is joined to
the previous one with a round-capped segment, so the drawing buffer shows
the partial stroke after every pointer move.
"""

import logging
import math
from enum import Enum
from typing import Optional, Tuple
import numpy as np

from .models import PixelBuffer, ToolMode, ToolState

logger = logging.getLogger(__name__)


class StrokeState(Enum):
    """Gesture state of the renderer."""
    IDLE = "idle"
    DRAWING = "drawing"


class StrokeRenderer:
    """
    Renders freehand strokes into a drawing buffer.

    State machine:
        IDLE -> DRAWING on begin() (brush or eraser only)
        DRAWING -> IDLE on end() (pointer up or pointer leaving the surface)

    The tool is captured when the stroke begins; changing the tool mid-stroke
    affects the next stroke only. The eraser paints the background color
    instead of removing alpha.

    Example:
        >>> renderer = StrokeRenderer(PixelBuffer.blank(64))
        >>> renderer.begin((10, 10), ToolState(color=(255, 0, 0), size=4))
        True
        >>> renderer.extend((40, 10))
        >>> renderer.end()
    """

    def __init__(self, buffer: PixelBuffer):
        self.buffer = buffer
        self.state = StrokeState.IDLE
        self.last_point: Optional[Tuple[int, int]] = None
        self._tool: Optional[ToolState] = None
        self.segment_count = 0

    @property
    def is_drawing(self) -> bool:
        return self.state == StrokeState.DRAWING

    def begin(self, point: Tuple[int, int], tool: ToolState) -> bool:
        """
        Start a stroke at a buffer point.

        Returns:
            False if the tool does not draw strokes (bucket mode)
        """
        if tool.mode == ToolMode.BUCKET:
            return False

        self.state = StrokeState.DRAWING
        self.last_point = (int(point[0]), int(point[1]))
        self._tool = tool
        self.segment_count = 0
        logger.debug(f"Stroke started at {self.last_point} ({tool.mode.value}, size {tool.size})")
        return True

    def extend(self, point: Tuple[int, int]):
        """Connect the previous point to a new one. Ignored while idle."""
        if not self.is_drawing:
            return

        point = (int(point[0]), int(point[1]))
        self._draw_segment(self.last_point, point)
        self.last_point = point
        self.segment_count += 1

    def end(self):
        """Finish the current stroke, if any."""
        if self.is_drawing:
            logger.debug(f"Stroke ended after {self.segment_count} segments")
        self.state = StrokeState.IDLE
        self.last_point = None
        self._tool = None

    def _draw_segment(self, start: Tuple[int, int], end: Tuple[int, int]):
        tool = self._tool
        pixels = self.buffer.pixels
        height, width = pixels.shape[:2]

        # Round caps and joins: every pixel within radius of the segment.
        # radius = (size - 1) / 2 keeps the painted width at most size.
        radius = max((tool.size - 1) / 2.0, 0.5)
        reach = int(math.ceil(radius))

        (x0, y0), (x1, y1) = start, end
        left = max(min(x0, x1) - reach, 0)
        right = min(max(x0, x1) + reach, width - 1)
        top = max(min(y0, y1) - reach, 0)
        bottom = min(max(y0, y1) + reach, height - 1)
        if left > right or top > bottom:
            return

        ys, xs = np.ogrid[top:bottom + 1, left:right + 1]
        dx, dy = x1 - x0, y1 - y0
        length_sq = dx * dx + dy * dy
        if length_sq:
            t = np.clip(((xs - x0) * dx + (ys - y0) * dy) / length_sq, 0.0, 1.0)
        else:
            t = 0.0
        off_x = x0 + t * dx - xs
        off_y = y0 + t * dy - ys
        mask = off_x * off_x + off_y * off_y <= radius * radius

        pixels[top:bottom + 1, left:right + 1][mask] = (*tool.stroke_color, 255)

"""
Coordinate mapping between display space and buffer space.

Pointer positions arrive in display coordinates (the on-screen rectangle the
canvas is rendered into, at whatever scale the host uses). Drawing and fill
operate on integer pixel positions of the fixed-size buffer.
"""

import math
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Any


@dataclass
class DisplayRect:
    """On-screen rectangle the buffer is rendered into."""
    left: float
    top: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"display rect must have positive size, got {self.width}x{self.height}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayRect":
        return cls(
            left=float(data.get("left", 0.0)),
            top=float(data.get("top", 0.0)),
            width=float(data["width"]),
            height=float(data["height"]),
        )


@dataclass
class PointerEvent:
    """
    Pointer or touch position in display coordinates.

    For touch input only the primary (first) touch point is read.
    """
    client_x: float = 0.0
    client_y: float = 0.0
    touches: List[Tuple[float, float]] = field(default_factory=list)

    @property
    def position(self) -> Tuple[float, float]:
        if self.touches:
            return self.touches[0]
        return (self.client_x, self.client_y)


def map_to_buffer(
    client: Tuple[float, float],
    rect: DisplayRect,
    buffer_size: Tuple[int, int],
) -> Tuple[int, int]:
    """
    Map a display-space position to a buffer pixel.

    Each axis is scaled independently by buffer size / displayed size and
    floored, then clamped into the buffer.

    Args:
        client: (x, y) position in display coordinates
        rect: Display rectangle the buffer is drawn into
        buffer_size: (width, height) of the buffer

    Returns:
        (x, y) in [0, width-1] x [0, height-1]

    Example:
        >>> map_to_buffer((256, 256), DisplayRect(0, 0, 512, 512), (1024, 1024))
        (512, 512)
    """
    width, height = buffer_size
    x = math.floor((client[0] - rect.left) * (width / rect.width))
    y = math.floor((client[1] - rect.top) * (height / rect.height))
    return (_clamp(x, width - 1), _clamp(y, height - 1))


def map_to_display(
    point: Tuple[int, int],
    rect: DisplayRect,
    buffer_size: Tuple[int, int],
) -> Tuple[float, float]:
    """
    Map a buffer pixel to the display position of its center.

    Inverse of map_to_buffer: mapping the result back yields the same pixel.
    """
    width, height = buffer_size
    x = rect.left + (point[0] + 0.5) * (rect.width / width)
    y = rect.top + (point[1] + 0.5) * (rect.height / height)
    return (x, y)


def _clamp(value: int, upper: int) -> int:
    return max(0, min(upper, value))


class CoordinateMapper:
    """
    Maps pointer events onto a buffer of fixed size.

    Example:
        >>> mapper = CoordinateMapper((1024, 1024))
        >>> mapper.map(PointerEvent(100, 50), DisplayRect(0, 0, 512, 512))
        (200, 100)
    """

    def __init__(self, buffer_size: Tuple[int, int]):
        self.buffer_size = buffer_size

    def map(self, event: PointerEvent, rect: DisplayRect) -> Tuple[int, int]:
        return map_to_buffer(event.position, rect, self.buffer_size)

    def to_display(self, point: Tuple[int, int], rect: DisplayRect) -> Tuple[float, float]:
        return map_to_display(point, rect, self.buffer_size)

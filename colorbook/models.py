"""
Core data structures for the coloring canvas.

Pixel buffers are RGBA uint8 arrays of shape (height, width, 4).
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Any, Tuple
import numpy as np

Rgb = Tuple[int, int, int]

CANVAS_SIZE = 1024
BACKGROUND_COLOR: Rgb = (255, 255, 255)

PRESET_COLORS = [
    "#ef4444",  # Red
    "#f97316",  # Orange
    "#facc15",  # Yellow
    "#4ade80",  # Green
    "#22d3ee",  # Cyan
    "#3b82f6",  # Blue
    "#a855f7",  # Purple
    "#ec4899",  # Pink
    "#78350f",  # Brown
    "#000000",  # Black
    "#ffffff",  # White
]


def parse_hex_color(value: str) -> Rgb:
    """
    Parse a hex color string into an RGB triple.

    Accepts "#rrggbb", "rrggbb" and the short "#rgb" form.

    Raises:
        ValueError: If the string is not a valid hex color
    """
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(c * 2 for c in text)
    if len(text) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    try:
        return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
    except ValueError:
        raise ValueError(f"Invalid hex color: {value!r}") from None


def to_hex(color: Rgb) -> str:
    """Format an RGB triple as "#rrggbb"."""
    return "#{:02x}{:02x}{:02x}".format(*color)


class ToolMode(Enum):
    """Active drawing tool."""
    BRUSH = "brush"
    ERASER = "eraser"
    BUCKET = "bucket"


@dataclass(frozen=True)
class ToolState:
    """
    Immutable tool configuration read at the start of each stroke or fill.

    Attributes:
        color: Paint color as an RGB triple (always fully opaque)
        size: Stroke width in buffer pixels
        mode: Brush, eraser or bucket fill
    """
    color: Rgb = field(default_factory=lambda: parse_hex_color(PRESET_COLORS[0]))
    size: int = 20
    mode: ToolMode = ToolMode.BRUSH

    def __post_init__(self):
        """Validate tool values."""
        if self.size <= 0:
            raise ValueError(f"size must be > 0, got {self.size}")
        if len(self.color) != 3 or any(not 0 <= int(c) <= 255 for c in self.color):
            raise ValueError(f"color must be an RGB triple of 0-255 values, got {self.color}")
        object.__setattr__(self, "color", tuple(int(c) for c in self.color))
        if not isinstance(self.mode, ToolMode):
            object.__setattr__(self, "mode", ToolMode(self.mode))

    @property
    def stroke_color(self) -> Rgb:
        """Color a freehand stroke is painted with (eraser paints background)."""
        if self.mode == ToolMode.ERASER:
            return BACKGROUND_COLOR
        return self.color

    def with_color(self, color: Rgb) -> "ToolState":
        """Pick a new color; picking a color while erasing switches back to the brush."""
        mode = ToolMode.BRUSH if self.mode == ToolMode.ERASER else self.mode
        return replace(self, color=tuple(color), mode=mode)

    def with_size(self, size: int) -> "ToolState":
        return replace(self, size=int(size))

    def with_mode(self, mode: ToolMode) -> "ToolState":
        return replace(self, mode=ToolMode(mode))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "color": to_hex(self.color),
            "size": self.size,
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolState":
        """Create from dictionary."""
        default = cls()
        color = data.get("color")
        return cls(
            color=parse_hex_color(color) if isinstance(color, str) else tuple(color or default.color),
            size=int(data.get("size", default.size)),
            mode=ToolMode(data.get("mode", default.mode.value)),
        )


class PixelBuffer:
    """
    Fixed-size RGBA raster.

    The array is exposed as ``pixels`` and is mutated in place by strokes,
    fills and clears.

    Example:
        >>> buf = PixelBuffer.blank(1024)
        >>> buf.pixel(0, 0)
        (255, 255, 255, 255)
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"pixels must have shape (H, W, 4), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"pixels must be uint8, got {pixels.dtype}")
        self.pixels = pixels

    @classmethod
    def blank(cls, size: int = CANVAS_SIZE, color: Rgb = BACKGROUND_COLOR) -> "PixelBuffer":
        """Create an opaque buffer filled with a solid color."""
        pixels = np.empty((size, size, 4), dtype=np.uint8)
        pixels[:, :, :3] = color
        pixels[:, :, 3] = 255
        return cls(pixels)

    @classmethod
    def empty(cls, size: int = CANVAS_SIZE) -> "PixelBuffer":
        """Create a fully transparent (all-zero) buffer."""
        return cls(np.zeros((size, size, 4), dtype=np.uint8))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        return tuple(int(c) for c in self.pixels[y, x])

    def fill(self, color: Rgb, alpha: int = 255):
        """Overwrite every pixel with one color."""
        self.pixels[:, :, :3] = color
        self.pixels[:, :, 3] = alpha

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"

"""
Coloring session.

A session owns both pixel buffers, the current tool and the components that
mutate and render them. Everything runs on the thread that delivers pointer
input; the only deferral is the one-tick delay before a bucket fill.
"""

import asyncio
import logging
from typing import Optional, Tuple, Union

from .compositor import ExportArtifact, LayerCompositor
from .config.session_config import SessionConfig
from .errors import ReferenceNotReadyError, SessionClosedError
from .fill import FillResult, FloodFillEngine
from .mapping import CoordinateMapper, DisplayRect, PointerEvent
from .models import BACKGROUND_COLOR, PixelBuffer, Rgb, ToolMode, ToolState, parse_hex_color
from .reference import ImageSource, ReferenceLayer
from .stroke import StrokeRenderer

logger = logging.getLogger(__name__)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class ColoringSession:
    """
    One coloring session over a single line-art image.

    Example:
        >>> session = ColoringSession()
        >>> session.load_reference(Path("lineart.png"))
        >>> session.set_mode(ToolMode.BUCKET)
        >>> session.pointer_down(PointerEvent(256, 256), DisplayRect(0, 0, 512, 512))
        >>> artifact = session.export()
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config or SessionConfig.default()
        size = self.config.canvas_size

        self.drawing = PixelBuffer.blank(size, BACKGROUND_COLOR)
        self.reference = ReferenceLayer(size)
        self.tool = ToolState(size=self.config.brush_limits.clamp(self.config.default_brush_size))

        self.mapper = CoordinateMapper((size, size))
        self.strokes = StrokeRenderer(self.drawing)
        self.filler = FloodFillEngine(threshold=self.config.boundary_threshold)
        self.compositor = LayerCompositor(
            overlay_opacity=self.config.overlay_opacity,
            export_prefix=self.config.export_prefix,
        )
        self.closed = False

    # Reference layer

    def load_reference(self, source: ImageSource):
        self._ensure_open()
        self.reference.load(source)

    async def load_reference_async(self, source: ImageSource):
        self._ensure_open()
        await self.reference.load_async(source)

    # Tool selection

    def set_tool(self, tool: ToolState):
        self._ensure_open()
        self.tool = tool.with_size(self.config.brush_limits.clamp(tool.size))

    def set_color(self, color):
        """Select a color (RGB triple or hex string). Leaves eraser mode."""
        self._ensure_open()
        if isinstance(color, str):
            color = parse_hex_color(color)
        self.tool = self.tool.with_color(color)

    def set_size(self, size: int):
        self._ensure_open()
        self.tool = self.tool.with_size(self.config.brush_limits.clamp(size))

    def set_mode(self, mode: ToolMode):
        self._ensure_open()
        self.tool = self.tool.with_mode(mode)

    # Pointer input

    def pointer_down(
        self, event: PointerEvent, rect: DisplayRect
    ) -> Union[FillResult, "asyncio.Future", None]:
        """
        Start a gesture.

        In bucket mode this fills at the pointer position instead of starting
        a stroke. Inside a running event loop the fill goes through
        schedule_fill and the pending future is returned; without a loop it
        runs immediately and the FillResult is returned.
        """
        self._ensure_open()
        point = self.mapper.map(event, rect)
        if self.tool.mode == ToolMode.BUCKET:
            if _running_loop() is not None:
                return self.schedule_fill(*point)
            return self.fill_at(*point)
        self.strokes.begin(point, self.tool)
        return None

    def pointer_move(self, event: PointerEvent, rect: DisplayRect):
        self._ensure_open()
        if not self.strokes.is_drawing:
            return
        self.strokes.extend(self.mapper.map(event, rect))

    def pointer_up(self):
        self._ensure_open()
        self.strokes.end()

    def pointer_leave(self):
        self._ensure_open()
        self.strokes.end()

    # Fill

    def fill_at(self, x: int, y: int, color: Optional[Rgb] = None) -> FillResult:
        """
        Bucket-fill the region around a buffer point.

        Raises:
            ReferenceNotReadyError: If the line art is not loaded and the
                fill policy is "block"
        """
        self._ensure_open()
        if not self.reference.is_ready:
            if self.config.fill_policy == "block":
                raise ReferenceNotReadyError(self.reference.status.value)
            logger.warning(
                f"Filling against a {self.reference.status.value} reference; "
                f"the whole canvas is fillable"
            )

        fill_color = self.tool.color if color is None else tuple(color)
        return self.filler.fill(self.drawing, self.reference.boundary_source(), (x, y), fill_color)

    def schedule_fill(self, x: int, y: int, color: Optional[Rgb] = None) -> "asyncio.Future":
        """
        Run fill_at on the next event loop tick.

        Must be called from a running event loop. The returned future
        resolves with the FillResult or carries the raised error.
        """
        self._ensure_open()
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        color = self.tool.color if color is None else tuple(color)

        def run():
            if future.cancelled():
                return
            try:
                future.set_result(self.fill_at(x, y, color))
            except Exception as e:
                future.set_exception(e)

        loop.call_soon(run)
        return future

    # Canvas

    def clear(self):
        """Reset the drawing to opaque white. The line art is untouched."""
        self._ensure_open()
        self.strokes.end()
        self.drawing.fill(BACKGROUND_COLOR)
        logger.info("Canvas cleared")

    def live_view(self):
        self._ensure_open()
        return self.compositor.live_view(self.drawing, self.reference.buffer)

    def export(self, now: Optional[float] = None) -> ExportArtifact:
        """
        Produce the flattened, timestamped PNG.

        Raises:
            ReferenceNotReadyError: If the line art is not loaded
            ExportError: If encoding fails
        """
        self._ensure_open()
        if not self.reference.is_ready:
            raise ReferenceNotReadyError(self.reference.status.value)
        return self.compositor.export(self.drawing, self.reference.buffer, now=now)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.drawing.size

    def close(self):
        """Release the buffers. Further operations raise SessionClosedError."""
        if self.closed:
            return
        self.strokes.end()
        self.drawing = None
        self.reference = None
        self.strokes = None
        self.closed = True
        logger.info("Session closed")

    def _ensure_open(self):
        if self.closed:
            raise SessionClosedError("Session is closed")

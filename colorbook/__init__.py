"""
Colorbook Canvas Engine

Raster drawing and flood-fill engine for coloring auto-generated line art:
freehand strokes, boundary-aware bucket fill, and multiply compositing of
the colors with the original linework for export.
"""

from .models import PixelBuffer, ToolMode, ToolState, PRESET_COLORS, CANVAS_SIZE, parse_hex_color
from .mapping import CoordinateMapper, DisplayRect, PointerEvent, map_to_buffer
from .stroke import StrokeRenderer, StrokeState
from .fill import FloodFillEngine, FillResult, boundary_mask
from .compositor import LayerCompositor, ExportArtifact, multiply_blend, save_artifact
from .reference import ReferenceLayer, ReferenceStatus
from .session import ColoringSession
from .config.session_config import SessionConfig
from .errors import (
    ColorbookError,
    ReferenceLoadError,
    ReferenceNotReadyError,
    ExportError,
    SessionClosedError,
)

__all__ = [
    "PixelBuffer",
    "ToolMode",
    "ToolState",
    "PRESET_COLORS",
    "CANVAS_SIZE",
    "parse_hex_color",
    "CoordinateMapper",
    "DisplayRect",
    "PointerEvent",
    "map_to_buffer",
    "StrokeRenderer",
    "StrokeState",
    "FloodFillEngine",
    "FillResult",
    "boundary_mask",
    "LayerCompositor",
    "ExportArtifact",
    "multiply_blend",
    "save_artifact",
    "ReferenceLayer",
    "ReferenceStatus",
    "ColoringSession",
    "SessionConfig",
    "ColorbookError",
    "ReferenceLoadError",
    "ReferenceNotReadyError",
    "ExportError",
    "SessionClosedError",
]

"""Tests for freehand stroke rendering."""

import numpy as np
import pytest

from colorbook.models import PixelBuffer, ToolMode, ToolState
from colorbook.stroke import StrokeRenderer, StrokeState

RED = (255, 0, 0)
WHITE_PX = (255, 255, 255, 255)
RED_PX = (255, 0, 0, 255)


def make_renderer(size: int = 64):
    return StrokeRenderer(PixelBuffer.blank(size))


class TestStrokeStateMachine:
    """Tests for the IDLE / DRAWING transitions."""

    def test_starts_idle(self):
        """Test a new renderer is idle."""
        renderer = make_renderer()
        assert renderer.state == StrokeState.IDLE
        assert renderer.last_point is None

    def test_begin_brush(self):
        """Test begin enters DRAWING for the brush."""
        renderer = make_renderer()
        assert renderer.begin((5, 5), ToolState(color=RED, size=4)) is True
        assert renderer.state == StrokeState.DRAWING
        assert renderer.last_point == (5, 5)

    def test_begin_bucket_stays_idle(self):
        """Test bucket mode never starts a stroke."""
        renderer = make_renderer()
        assert renderer.begin((5, 5), ToolState(mode=ToolMode.BUCKET)) is False
        assert renderer.state == StrokeState.IDLE

    def test_end_returns_to_idle(self):
        """Test end resets the stroke."""
        renderer = make_renderer()
        renderer.begin((5, 5), ToolState(color=RED, size=4))
        renderer.end()
        assert renderer.state == StrokeState.IDLE
        assert renderer.last_point is None

    def test_extend_while_idle_is_ignored(self):
        """Test moves without a gesture do not draw."""
        renderer = make_renderer()
        before = renderer.buffer.copy()
        renderer.extend((30, 30))
        assert renderer.buffer == before

    def test_begin_alone_draws_nothing(self):
        """Test pointer-down without movement leaves the buffer unchanged."""
        renderer = make_renderer()
        before = renderer.buffer.copy()
        renderer.begin((30, 30), ToolState(color=RED, size=10))
        assert renderer.buffer == before


class TestStrokeRendering:
    """Tests for segment drawing."""

    def test_segment_is_drawn(self):
        """Test a horizontal segment colors its path."""
        renderer = make_renderer()
        renderer.begin((10, 10), ToolState(color=RED, size=10))
        renderer.extend((40, 10))

        buf = renderer.buffer
        assert buf.pixel(25, 10) == RED_PX
        assert buf.pixel(25, 13) == RED_PX
        assert buf.pixel(25, 20) == WHITE_PX
        assert buf.pixel(55, 10) == WHITE_PX

    def test_round_caps(self):
        """Test segment ends extend by half the width."""
        renderer = make_renderer()
        renderer.begin((20, 30), ToolState(color=RED, size=10))
        renderer.extend((40, 30))

        buf = renderer.buffer
        assert buf.pixel(16, 30) == RED_PX
        assert buf.pixel(44, 30) == RED_PX
        # Corners of a square cap stay untouched
        assert buf.pixel(15, 25) == WHITE_PX

    def test_segments_are_connected(self):
        """Test consecutive points are joined into one stroke."""
        renderer = make_renderer()
        renderer.begin((10, 10), ToolState(color=RED, size=4))
        renderer.extend((10, 50))
        renderer.extend((50, 50))

        buf = renderer.buffer
        assert buf.pixel(10, 30) == RED_PX
        assert buf.pixel(30, 50) == RED_PX
        assert buf.pixel(10, 50) == RED_PX
        assert renderer.segment_count == 2

    def test_only_stroke_color_is_written(self):
        """Test pixels are either untouched or the opaque stroke color."""
        renderer = make_renderer()
        renderer.begin((5, 5), ToolState(color=(12, 34, 56), size=7))
        renderer.extend((60, 40))

        pixels = renderer.buffer.pixels.reshape(-1, 4)
        colors = {tuple(p) for p in np.unique(pixels, axis=0)}
        assert colors == {(255, 255, 255, 255), (12, 34, 56, 255)}

    def test_eraser_paints_background(self):
        """Test the eraser restores opaque white."""
        buffer = PixelBuffer.blank(64, color=RED)
        renderer = StrokeRenderer(buffer)
        renderer.begin((10, 32), ToolState(color=(0, 0, 255), size=8, mode=ToolMode.ERASER))
        renderer.extend((50, 32))

        assert buffer.pixel(30, 32) == WHITE_PX
        assert buffer.pixel(30, 5) == RED_PX

    def test_tool_captured_at_begin(self):
        """Test the tool in effect is the one given to begin."""
        renderer = make_renderer()
        tool = ToolState(color=RED, size=4)
        renderer.begin((10, 10), tool)
        renderer.extend((20, 10))
        assert renderer.buffer.pixel(15, 10) == RED_PX

    @pytest.mark.parametrize("size,expected", [(1, 1), (10, 9), (11, 11), (20, 19)])
    def test_dot_diameter_within_size(self, size, expected):
        """Test a single-point dab is never wider than the brush size."""
        renderer = make_renderer()
        renderer.begin((32, 32), ToolState(color=RED, size=size))
        renderer.extend((32, 32))

        painted = np.all(renderer.buffer.pixels == RED_PX, axis=-1)
        assert painted[:, 32].sum() == expected
        assert painted[32, :].sum() == expected

    def test_line_width_matches_size(self):
        """Test caps do not widen a straight segment."""
        renderer = make_renderer()
        renderer.begin((10, 32), ToolState(color=RED, size=11))
        renderer.extend((50, 32))

        painted = np.all(renderer.buffer.pixels == RED_PX, axis=-1)
        assert painted[:, 10].sum() == 11
        assert painted[:, 30].sum() == 11
        assert painted[:, 50].sum() == 11

"""Tests for reference layer loading."""

import asyncio
import base64
import threading

import cv2
import numpy as np
import pytest

from colorbook.errors import ReferenceLoadError
from colorbook.fill import boundary_mask
from colorbook.reference import (
    ReferenceLayer,
    ReferenceStatus,
    decode_image,
    image_from_base64,
    read_source,
)
from tests.fixtures.lineart_fixtures import encode_lineart_png


class TestDecodeImage:
    """Tests for decode_image."""

    def test_resamples_to_canvas(self):
        """Test arbitrary native sizes are resampled to the canvas size."""
        pixels = decode_image(encode_lineart_png(size=(300, 300)), size=1024)
        assert pixels.shape == (1024, 1024, 4)
        assert pixels.dtype == np.uint8
        assert np.all(pixels[:, :, 3] == 255)

    def test_lines_survive_resampling(self):
        """Test the box outline is still a boundary after scaling."""
        pixels = decode_image(encode_lineart_png(size=(300, 300), box=(60, 60, 240, 240)), size=1024)
        assert tuple(pixels[512, 204, :3]) == (0, 0, 0)
        assert tuple(pixels[512, 512, :3]) == (255, 255, 255)

    def test_grayscale_input(self):
        """Test single-channel images are accepted."""
        gray = np.full((40, 40), 255, dtype=np.uint8)
        gray[:, 20] = 0
        ok, encoded = cv2.imencode(".png", gray)
        pixels = decode_image(encoded.tobytes(), size=40)
        assert tuple(pixels[5, 20]) == (0, 0, 0, 255)
        assert tuple(pixels[5, 5]) == (255, 255, 255, 255)

    def test_alpha_flattened_onto_white(self):
        """Test transparent areas become white, not black lines."""
        bgra = np.zeros((32, 32, 4), dtype=np.uint8)
        bgra[10:20, 10:20, 3] = 255
        ok, encoded = cv2.imencode(".png", bgra)
        pixels = decode_image(encoded.tobytes(), size=32)
        assert tuple(pixels[0, 0]) == (255, 255, 255, 255)
        assert tuple(pixels[15, 15]) == (0, 0, 0, 255)

    def test_color_order_is_rgb(self):
        """Test channels come out as RGB."""
        bgr = np.zeros((8, 8, 3), dtype=np.uint8)
        bgr[:, :] = (255, 0, 0)  # blue in BGR
        ok, encoded = cv2.imencode(".png", bgr)
        assert tuple(decode_image(encoded.tobytes(), size=8)[0, 0, :3]) == (0, 0, 255)

    def test_garbage_raises(self):
        """Test undecodable bytes raise ReferenceLoadError."""
        with pytest.raises(ReferenceLoadError, match="Could not decode"):
            decode_image(b"not an image")

    def test_empty_raises(self):
        """Test empty data raises ReferenceLoadError."""
        with pytest.raises(ReferenceLoadError, match="empty"):
            decode_image(b"")

    def test_opencv_error_becomes_load_error(self, monkeypatch):
        """Test OpenCV failures surface as ReferenceLoadError."""
        def broken_imdecode(buf, flags):
            raise cv2.error("imdecode failed")

        monkeypatch.setattr(cv2, "imdecode", broken_imdecode)
        with pytest.raises(ReferenceLoadError, match="Could not process"):
            decode_image(encode_lineart_png(), 64)


class TestSources:
    """Tests for source handling."""

    def test_base64_with_data_url(self):
        """Test data URL prefixes are stripped."""
        data = encode_lineart_png()
        text = "data:image/png;base64," + base64.b64encode(data).decode()
        assert image_from_base64(text) == data

    def test_invalid_base64(self):
        """Test malformed base64 raises ReferenceLoadError."""
        with pytest.raises(ReferenceLoadError, match="Invalid base64"):
            image_from_base64("data:image/png;base64,@@@")

    def test_read_path(self, tmp_path):
        """Test reading from a file path."""
        path = tmp_path / "art.png"
        path.write_bytes(b"abc")
        assert read_source(path) == b"abc"

    def test_missing_path(self, tmp_path):
        """Test a missing file raises ReferenceLoadError."""
        with pytest.raises(ReferenceLoadError, match="Could not read"):
            read_source(tmp_path / "missing.png")

    def test_unsupported_type(self):
        """Test other source types are rejected."""
        with pytest.raises(ReferenceLoadError, match="Unsupported"):
            read_source(12345)


class TestReferenceLayer:
    """Tests for ReferenceLayer status handling."""

    def test_starts_empty(self):
        """Test a new layer is empty and transparent."""
        layer = ReferenceLayer(64)
        assert layer.status == ReferenceStatus.EMPTY
        assert not layer.is_ready
        assert not layer.buffer.pixels.any()
        assert not boundary_mask(layer.buffer).any()

    def test_load_bytes(self):
        """Test a successful load publishes the buffer."""
        layer = ReferenceLayer(128)
        layer.load_bytes(encode_lineart_png())
        assert layer.status == ReferenceStatus.READY
        assert layer.is_ready
        assert layer.buffer.size == (128, 128)
        assert layer.error is None

    def test_load_base64(self):
        """Test loading base64 text."""
        layer = ReferenceLayer(64)
        layer.load_base64(base64.b64encode(encode_lineart_png()).decode())
        assert layer.is_ready

    def test_load_path(self, tmp_path):
        """Test loading from disk."""
        path = tmp_path / "art.png"
        path.write_bytes(encode_lineart_png())
        layer = ReferenceLayer(64)
        layer.load_path(str(path))
        assert layer.is_ready

    def test_failed_load(self):
        """Test a failed load records the error and keeps an empty buffer."""
        layer = ReferenceLayer(64)
        with pytest.raises(ReferenceLoadError):
            layer.load_bytes(b"broken")
        assert layer.status == ReferenceStatus.FAILED
        assert "Could not decode" in layer.error
        assert not layer.buffer.pixels.any()

    def test_reset(self):
        """Test reset returns to EMPTY."""
        layer = ReferenceLayer(64)
        layer.load_bytes(encode_lineart_png())
        layer.reset()
        assert layer.status == ReferenceStatus.EMPTY
        assert not layer.buffer.pixels.any()

    def test_load_async_reports_loading(self):
        """Test the layer is LOADING while the async load is in flight."""
        layer = ReferenceLayer(64)

        async def scenario():
            task = asyncio.ensure_future(layer.load_async(encode_lineart_png()))
            await asyncio.sleep(0)
            assert layer.status == ReferenceStatus.LOADING
            await task

        asyncio.run(scenario())
        assert layer.status == ReferenceStatus.READY

    def test_load_async_failure(self):
        """Test async failures propagate and mark the layer FAILED."""
        layer = ReferenceLayer(64)
        with pytest.raises(ReferenceLoadError):
            asyncio.run(layer.load_async(b"broken"))
        assert layer.status == ReferenceStatus.FAILED

    def test_opencv_error_marks_failed(self, monkeypatch):
        """Test an OpenCV failure during load leaves the layer FAILED, not LOADING."""
        def broken_resize(*args, **kwargs):
            raise cv2.error("resize failed")

        monkeypatch.setattr(cv2, "resize", broken_resize)
        layer = ReferenceLayer(64)
        with pytest.raises(ReferenceLoadError):
            layer.load_bytes(encode_lineart_png())
        assert layer.status == ReferenceStatus.FAILED
        assert "resize failed" in layer.error

    def test_load_async_cancelled(self):
        """Test cancelling an in-flight async load marks the layer FAILED."""
        layer = ReferenceLayer(64)
        release = threading.Event()

        def slow_decode(source):
            release.wait(5)
            return decode_image(source, 64)

        layer._decode = slow_decode

        async def scenario():
            task = asyncio.ensure_future(layer.load_async(encode_lineart_png()))
            await asyncio.sleep(0)
            assert layer.status == ReferenceStatus.LOADING
            task.cancel()
            try:
                with pytest.raises(asyncio.CancelledError):
                    await task
            finally:
                release.set()

        asyncio.run(scenario())
        assert layer.status == ReferenceStatus.FAILED
        assert layer.error == "CancelledError"
        assert not layer.buffer.pixels.any()

    def test_boundary_source_empty_until_ready(self):
        """Test the boundary source is transparent before a load and the line art after."""
        layer = ReferenceLayer(128)
        assert not boundary_mask(layer.boundary_source()).any()

        layer.load_bytes(encode_lineart_png())
        assert layer.boundary_source() is layer.buffer
        assert boundary_mask(layer.boundary_source()).any()

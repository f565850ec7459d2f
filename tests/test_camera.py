"""
Tests for frame sources.

Only ImageFileSource is exercised; WebcamCapture needs a real device.

Run with: pytest tests/test_camera.py -v
"""

import os
import sys
import cv2
import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.camera import CaptureConfig, ImageFileSource
from core.exceptions import CameraUnavailable


@pytest.fixture
def images(tmp_path):
    paths = []
    for i, value in enumerate((10, 200)):
        path = tmp_path / f"frame_{i}.png"
        cv2.imwrite(str(path), np.full((32, 32, 3), value, dtype=np.uint8))
        paths.append(path)
    return paths


class TestImageFileSource:
    """Tests for the still-image source."""

    def test_frames_in_order_then_last_repeats(self, images):
        with ImageFileSource(images) as source:
            first = source.read_frame()
            second = source.read_frame()
            third = source.read_frame()

        assert first.shape == (32, 32, 3)
        assert int(first[0, 0, 0]) == 10
        assert int(second[0, 0, 0]) == 200
        assert int(third[0, 0, 0]) == 200

    def test_closed_after_context(self, images):
        source = ImageFileSource(images[0])
        with source:
            assert source.is_open
        assert not source.is_open

        with pytest.raises(CameraUnavailable):
            source.read_frame()

    def test_missing_file(self, tmp_path):
        source = ImageFileSource(tmp_path / "nope.png")
        with pytest.raises(CameraUnavailable, match="not found"):
            source.open()

    def test_undecodable_file(self, tmp_path):
        bogus = tmp_path / "bogus.png"
        bogus.write_bytes(b"not an image")

        with ImageFileSource(bogus) as source:
            with pytest.raises(CameraUnavailable, match="decode"):
                source.read_frame()

    def test_empty_path_list(self):
        with pytest.raises(ValueError):
            ImageFileSource([])


class TestCaptureConfig:
    def test_from_config(self):
        config = CaptureConfig.from_config({"width": 1280, "height": 720, "device_id": 2})
        assert config == CaptureConfig(width=1280, height=720, device_id=2)

    def test_defaults(self):
        assert CaptureConfig.from_config(None) == CaptureConfig()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

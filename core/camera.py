"""
Frame sources for face capture.

A frame source is opened for the duration of one enrollment or verification
and must be released on every exit path. Two sources are provided:

  - WebcamCapture: an OpenCV video device
  - ImageFileSource: still images read from disk (CLI and offline use)

Both can be used as context managers.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np

from core.exceptions import CameraUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CaptureConfig:
    """Configuration for webcam capture."""
    width: int = 640
    height: int = 480
    device_id: int = 0

    @classmethod
    def from_config(cls, capture_config: dict = None) -> "CaptureConfig":
        capture_config = capture_config or {}
        return cls(
            width=int(capture_config.get("width", 640)),
            height=int(capture_config.get("height", 480)),
            device_id=int(capture_config.get("device_id", 0)),
        )


class FrameSource:
    """Base class for anything that can hand out BGR frames."""

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def read_frame(self) -> np.ndarray:
        """
        Read one BGR frame.

        Raises:
            CameraUnavailable: If the source is closed or returns no frame.
        """
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        return False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class WebcamCapture(FrameSource):
    """
    OpenCV webcam frame source.

    Args:
        config: Device and resolution settings.
    """

    def __init__(self, config: Optional[CaptureConfig] = None):
        self.config = config or CaptureConfig()
        self._cap: Optional[cv2.VideoCapture] = None

    def open(self) -> None:
        if self._cap is not None:
            self.close()

        self._cap = cv2.VideoCapture(self.config.device_id)

        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise CameraUnavailable(
                f"Failed to open camera {self.config.device_id}",
                context={"device_id": self.config.device_id},
            )

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)

        logger.info(
            f"Opened camera {self.config.device_id} at {self.config.width}x{self.config.height}"
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera closed")

    def read_frame(self) -> np.ndarray:
        if self._cap is None:
            raise CameraUnavailable("Camera is not open")

        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CameraUnavailable("Camera returned no frame")

        return frame

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()


class ImageFileSource(FrameSource):
    """
    Frame source backed by image files.

    Frames are returned in the given order; the last image repeats once the
    list is exhausted.

    Args:
        paths: One or more image paths readable by OpenCV.
    """

    def __init__(self, paths: Union[str, Path, List[Union[str, Path]]]):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self.paths = [Path(p) for p in paths]
        if not self.paths:
            raise ValueError("ImageFileSource needs at least one path")
        self._index = 0
        self._open = False

    def open(self) -> None:
        missing = [str(p) for p in self.paths if not p.exists()]
        if missing:
            raise CameraUnavailable(f"Image file(s) not found: {', '.join(missing)}")
        self._index = 0
        self._open = True

    def close(self) -> None:
        self._open = False

    def read_frame(self) -> np.ndarray:
        if not self._open:
            raise CameraUnavailable("Image source is not open")

        path = self.paths[min(self._index, len(self.paths) - 1)]
        self._index += 1

        frame = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if frame is None:
            raise CameraUnavailable(f"Failed to decode image: {path}")
        return frame

    @property
    def is_open(self) -> bool:
        return self._open

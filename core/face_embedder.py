"""
Face Embedding Extractor

Turns a single camera frame into a fixed-length face embedding, or reports
that no face was found. This is the SignatureExtractor boundary of the
system: the model behind it is treated as a black box, only the embedding
length has to stay stable between enrollment and verification.

Backends:
  - FaceEmbedder: insightface model bundle (SCRFD detector + ArcFace)
  - StaticExtractor: returns preset embeddings, for tests and offline use

Usage:
    from core.face_embedder import FaceEmbedder

    embedder = FaceEmbedder(config)
    embedder.load_model()
    embedding = embedder.extract(frame_bgr)   # (D,) float32
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import numpy as np

from core.exceptions import DimensionMismatch, NoFaceDetected

logger = logging.getLogger(__name__)

# Backend availability flag
_INSIGHTFACE_AVAILABLE = False

try:
    from insightface.app import FaceAnalysis
    _INSIGHTFACE_AVAILABLE = True
except ImportError:
    pass


class SignatureExtractor(ABC):
    """
    Abstract base class for face embedding extraction.

    Attributes:
        embedding_dim: Length of every embedding this extractor produces.
    """

    embedding_dim: int

    @abstractmethod
    def extract(self, frame: np.ndarray) -> np.ndarray:
        """
        Extract one face embedding from a frame.

        Args:
            frame: Image in BGR format (H, W, 3), uint8.

        Returns:
            1-D float32 embedding of length embedding_dim.

        Raises:
            NoFaceDetected: If the frame contains no face.
        """
        pass


class FaceEmbedder(SignatureExtractor):
    """
    Extract identity embeddings with an insightface model bundle.

    The model is loaded lazily on the first extraction. When several faces
    are visible, the one with the highest detection score is used.

    Args:
        config: Dictionary with keys:
            - model: insightface bundle name (default "buffalo_l")
            - device: "cuda" or "cpu"
            - det_size: detector input size in pixels (default 640)
            - embedding_dim: expected embedding length (default 512)
    """

    def __init__(self, config: Optional[dict] = None):
        if config is None:
            config = {}

        self.model_name = config.get("model", "buffalo_l")
        self.device = config.get("device", "cpu")
        self.det_size = int(config.get("det_size", 640))
        self.embedding_dim = int(config.get("embedding_dim", 512))

        self._model = None
        self.is_loaded = False

    def load_model(self) -> None:
        """Load the face analysis model. Called automatically by extract()."""
        if self.is_loaded:
            return

        if not _INSIGHTFACE_AVAILABLE:
            raise ImportError(
                "insightface not installed. Run: pip install insightface onnxruntime"
            )

        if self.device == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
        else:
            providers = ["CPUExecutionProvider"]

        self._model = FaceAnalysis(name=self.model_name, providers=providers)
        self._model.prepare(
            ctx_id=0 if self.device == "cuda" else -1,
            det_size=(self.det_size, self.det_size),
        )

        self.is_loaded = True
        logger.info(f"FaceEmbedder loaded (model={self.model_name}, device={self.device})")

    def extract(self, frame: np.ndarray) -> np.ndarray:
        if frame is None:
            raise NoFaceDetected("Empty frame")

        if not self.is_loaded:
            self.load_model()

        faces = self._model.get(frame)
        if not faces:
            raise NoFaceDetected("No face detected in frame")

        if len(faces) > 1:
            logger.debug(f"{len(faces)} faces detected, using the most confident one")

        best_face = max(faces, key=lambda f: f.det_score)
        embedding = np.asarray(best_face.normed_embedding, dtype=np.float32).ravel()

        if embedding.shape[0] != self.embedding_dim:
            raise DimensionMismatch(
                f"Model produced {embedding.shape[0]}-dim embedding, "
                f"expected {self.embedding_dim}",
                context={"actual": embedding.shape[0], "expected": self.embedding_dim},
            )

        return embedding


class StaticExtractor(SignatureExtractor):
    """
    Extractor that replays preset embeddings.

    Each call to extract() returns the next embedding in the sequence; a None
    entry simulates a frame without a face. The last entry repeats once the
    sequence is exhausted.

    Args:
        embeddings: Embeddings to return, in order.
    """

    def __init__(self, embeddings: Iterable[Optional[Iterable[float]]]):
        self._embeddings: List[Optional[np.ndarray]] = [
            None if e is None else np.asarray(e, dtype=np.float32).ravel()
            for e in embeddings
        ]
        if not self._embeddings:
            raise ValueError("StaticExtractor needs at least one embedding")

        first = next((e for e in self._embeddings if e is not None), None)
        self.embedding_dim = first.shape[0] if first is not None else 0
        self.calls = 0

    def extract(self, frame: np.ndarray) -> np.ndarray:
        index = min(self.calls, len(self._embeddings) - 1)
        self.calls += 1

        embedding = self._embeddings[index]
        if embedding is None:
            raise NoFaceDetected("No face detected in frame")
        return embedding.copy()

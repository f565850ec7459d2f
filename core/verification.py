"""
Verification Engine: compare a fresh face embedding against an enrolled one.

The decision is a plain Euclidean distance checked against a fixed threshold:

    is_match = distance(probe, enrolled) < threshold

The comparison is strict, so a distance exactly equal to the threshold is a
non-match and a threshold of 0 never matches. The engine is pure: it never
touches the ledger, the camera or the network.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from core.exceptions import DimensionMismatch

logger = logging.getLogger(__name__)

# Default Euclidean distance cutoff in embedding units
DEFAULT_THRESHOLD = 0.5


@dataclass
class VerificationResult:
    """
    Result of comparing a probe embedding to an enrolled embedding.

    Attributes:
        distance: Euclidean distance between the two embeddings.
        threshold: Threshold the distance was compared against.
        is_match: True when distance < threshold.
    """

    distance: float
    threshold: float
    is_match: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance": self.distance,
            "threshold": self.threshold,
            "is_match": self.is_match,
        }


def _as_vector(embedding) -> np.ndarray:
    return np.asarray(embedding, dtype=np.float64).ravel()


def distance(a, b) -> float:
    """
    Euclidean distance between two embeddings.

    Args:
        a: First embedding, any 1-D numeric sequence.
        b: Second embedding, same length as a.

    Returns:
        Non-negative distance as a Python float.

    Raises:
        DimensionMismatch: If the embeddings have different lengths.
    """
    a = _as_vector(a)
    b = _as_vector(b)

    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(
            f"Embedding dimension mismatch: {a.shape[0]} vs {b.shape[0]}",
            context={"probe_dim": int(a.shape[0]), "template_dim": int(b.shape[0])},
        )

    return float(np.linalg.norm(a - b))


def is_match(a, b, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """Return True when distance(a, b) is strictly below threshold."""
    return distance(a, b) < threshold


class VerificationEngine:
    """
    Threshold-based face embedding matcher.

    Args:
        threshold: Fixed distance cutoff. Must be finite and non-negative.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        threshold = float(threshold)
        if not math.isfinite(threshold) or threshold < 0:
            raise ValueError(f"threshold must be a finite non-negative number, got {threshold}")
        self.threshold = threshold

    @classmethod
    def from_config(cls, verification_config: dict = None) -> "VerificationEngine":
        """Build an engine from the `verification` config section."""
        if verification_config is None:
            verification_config = {}
        return cls(threshold=verification_config.get("threshold", DEFAULT_THRESHOLD))

    def compare(self, probe_embedding, enrolled_embedding) -> VerificationResult:
        """
        Compare a freshly captured embedding with the enrolled one.

        Raises:
            DimensionMismatch: If the embeddings have different lengths.
        """
        dist = distance(probe_embedding, enrolled_embedding)
        matched = dist < self.threshold

        logger.debug(f"Verification distance={dist:.4f} threshold={self.threshold} match={matched}")

        return VerificationResult(distance=dist, threshold=self.threshold, is_match=matched)

    def is_match(self, probe_embedding, enrolled_embedding) -> bool:
        """Shortcut for compare(...).is_match."""
        return self.compare(probe_embedding, enrolled_embedding).is_match

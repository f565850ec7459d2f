"""
Signature Codec

Reversible encoding of a face embedding into the opaque byte string that is
committed to the identity ledger, and decoding back.

Wire format: a sequence of IEEE-754 float32 values in a fixed byte order,
4 bytes per element, no header and no length prefix. The embedding length is
implicit and shared by encoder and decoder through configuration.

The encoding is not a hash: verification decodes the stored values to
compute a distance.

Usage:
    from core.signature_codec import encode, decode

    signature = encode(embedding)      # bytes, len == 4 * len(embedding)
    restored = decode(signature)       # np.ndarray float32, bit-identical
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np

from core.exceptions import DimensionMismatch, MalformedSignature

logger = logging.getLogger(__name__)

# Width in bytes of one encoded element (float32)
ELEMENT_WIDTH = 4

_BYTE_ORDER_CHARS = {"little": "<", "big": ">"}

EmbeddingLike = Union[np.ndarray, Sequence[float]]


class SignatureCodec:
    """
    Encode embeddings as fixed-width float32 byte strings.

    Args:
        byte_order: "little" or "big". Must be the same for the encoder and
                    the decoder of a given ledger.
        embedding_dim: Expected embedding length. When set, decode() rejects
                       signatures of any other length.
    """

    def __init__(self, byte_order: str = "little", embedding_dim: Optional[int] = None):
        if byte_order not in _BYTE_ORDER_CHARS:
            raise ValueError(f"byte_order must be 'little' or 'big', got {byte_order!r}")
        self.byte_order = byte_order
        self.embedding_dim = embedding_dim
        self._dtype = np.dtype(f"{_BYTE_ORDER_CHARS[byte_order]}f4")

    @classmethod
    def from_config(cls, signature_config: dict = None, verification_config: dict = None):
        """Build a codec from the `signature` and `verification` config sections."""
        signature_config = signature_config or {}
        verification_config = verification_config or {}
        return cls(
            byte_order=signature_config.get("byte_order", "little"),
            embedding_dim=verification_config.get("embedding_dim"),
        )

    def encode(self, embedding: EmbeddingLike) -> bytes:
        """
        Serialize an embedding to bytes.

        Args:
            embedding: 1-D sequence of finite numbers.

        Returns:
            Byte string of length 4 * len(embedding).

        Raises:
            ValueError: If the embedding is empty, not 1-D, or not finite.
            DimensionMismatch: If embedding_dim is set and the length differs.
        """
        values = np.asarray(embedding, dtype=np.float32)

        if values.ndim != 1:
            raise ValueError(f"Embedding must be 1-D, got shape {values.shape}")
        if values.size == 0:
            raise ValueError("Cannot encode an empty embedding")
        if not np.all(np.isfinite(values)):
            raise ValueError("Embedding contains NaN or infinite values")

        self._check_dim(values.size)

        return values.astype(self._dtype).tobytes()

    def decode(self, signature: bytes) -> np.ndarray:
        """
        Deserialize a signature back to a float32 embedding.

        Args:
            signature: Bytes previously produced by encode().

        Returns:
            1-D native-order float32 array.

        Raises:
            MalformedSignature: If the length is zero or not a multiple of 4.
            DimensionMismatch: If embedding_dim is set and the length differs.
        """
        if not isinstance(signature, (bytes, bytearray, memoryview)):
            raise MalformedSignature(
                f"Signature must be bytes, got {type(signature).__name__}"
            )

        n_bytes = len(signature)
        if n_bytes == 0 or n_bytes % ELEMENT_WIDTH != 0:
            raise MalformedSignature(
                f"Signature length {n_bytes} is not a positive multiple of {ELEMENT_WIDTH}",
                context={"length": n_bytes},
            )

        self._check_dim(n_bytes // ELEMENT_WIDTH)

        return np.frombuffer(bytes(signature), dtype=self._dtype).astype(np.float32)

    def _check_dim(self, length: int) -> None:
        if self.embedding_dim is not None and length != self.embedding_dim:
            raise DimensionMismatch(
                f"Embedding has {length} values, expected {self.embedding_dim}",
                context={"actual": length, "expected": self.embedding_dim},
            )


def to_hex(signature: bytes) -> str:
    """Render a signature as 0x-prefixed lowercase hex."""
    return "0x" + bytes(signature).hex()


def from_hex(text: str) -> bytes:
    """
    Parse 0x-prefixed (or bare) hex text into signature bytes.

    Raises:
        MalformedSignature: If the text is not valid hex.
    """
    body = text[2:] if text[:2].lower() == "0x" else text
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise MalformedSignature(f"Signature is not valid hex: {e}") from e


# Default codec used by the module-level helpers
_default_codec = SignatureCodec()


def encode(embedding: EmbeddingLike) -> bytes:
    """Encode with the default little-endian codec."""
    return _default_codec.encode(embedding)


def decode(signature: bytes) -> np.ndarray:
    """Decode with the default little-endian codec."""
    return _default_codec.decode(signature)

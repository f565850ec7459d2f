"""
Core Module for FaceLedger

This package contains the biometric-to-ledger verification protocol:
turning a face into a comparable signature, committing it to the identity
ledger once, comparing fresh captures against it, and the admin override.

Main components:
    - config: Configuration loading and management
    - exceptions: Error taxonomy shared by every layer
    - signature_codec: Lossless embedding <-> bytes encoding
    - verification: Euclidean distance + threshold decision
    - ledger: Identity ledger contract and implementations
    - admin_relay: Privileged override of the verified flag
    - face_embedder / camera: Capture boundary
    - session / flows: End-to-end enrollment and verification

Usage:
    from core.config import get_config
    from core.ledger import get_ledger
    from core.flows import enroll_embedding, verify_embedding
"""

from core.config import (
    get_config,
    get_section,
    get_face_embedding_config,
    get_capture_config,
    get_signature_config,
    get_verification_config,
    get_storage_config,
    get_relay_config,
    get_api_config,
    get_server_config,
)

from core.exceptions import (
    FaceLedgerError,
    NoFaceDetected,
    CaptureTimeout,
    CameraUnavailable,
    DimensionMismatch,
    MalformedSignature,
    AlreadyEnrolled,
    NotEnrolled,
    Unauthorized,
    LedgerUnavailable,
    RelayError,
)

from core.signature_codec import SignatureCodec, encode, decode, to_hex, from_hex

from core.verification import (
    VerificationEngine,
    VerificationResult,
    distance,
    is_match,
)

from core.ledger import (
    IdentityRecord,
    IdentityLedger,
    InMemoryIdentityLedger,
    SQLiteIdentityLedger,
    get_ledger,
)

from core.admin_relay import AdminRelay, RelayOutcome, get_admin_relay

__all__ = [
    # Configuration
    "get_config",
    "get_section",
    "get_face_embedding_config",
    "get_capture_config",
    "get_signature_config",
    "get_verification_config",
    "get_storage_config",
    "get_relay_config",
    "get_api_config",
    "get_server_config",
    # Errors
    "FaceLedgerError",
    "NoFaceDetected",
    "CaptureTimeout",
    "CameraUnavailable",
    "DimensionMismatch",
    "MalformedSignature",
    "AlreadyEnrolled",
    "NotEnrolled",
    "Unauthorized",
    "LedgerUnavailable",
    "RelayError",
    # Signature codec
    "SignatureCodec",
    "encode",
    "decode",
    "to_hex",
    "from_hex",
    # Verification
    "VerificationEngine",
    "VerificationResult",
    "distance",
    "is_match",
    # Ledger
    "IdentityRecord",
    "IdentityLedger",
    "InMemoryIdentityLedger",
    "SQLiteIdentityLedger",
    "get_ledger",
    # Admin relay
    "AdminRelay",
    "RelayOutcome",
    "get_admin_relay",
]

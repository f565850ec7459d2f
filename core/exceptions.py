"""
Error taxonomy for FaceLedger.

Every failure of the enrollment, verification and override paths is raised as
a subclass of FaceLedgerError so callers can decide the next action (retry
capture, re-enroll, contact an administrator) from the type alone.
"""

from typing import Any, Dict, Optional


class FaceLedgerError(Exception):
    """
    Base exception for all FaceLedger errors.

    Args:
        message: Human-readable error message.
        context: Additional context about the error (account, lengths, ...).
        error_code: Stable code for programmatic handling.
    """

    default_code = "FACELEDGER_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        self.error_code = error_code or self.default_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


# ============================================================
# Capture errors
# ============================================================

class NoFaceDetected(FaceLedgerError):
    """Zero faces found in the captured frame. Recoverable: capture again."""

    default_code = "NO_FACE_DETECTED"


class CaptureTimeout(FaceLedgerError):
    """Frame acquisition or embedding extraction did not finish in time."""

    default_code = "CAPTURE_TIMEOUT"


class CameraUnavailable(FaceLedgerError):
    """The capture device could not be opened or stopped delivering frames."""

    default_code = "CAMERA_UNAVAILABLE"


# ============================================================
# Signature / comparison errors
# ============================================================

class DimensionMismatch(FaceLedgerError):
    """
    Two embeddings have different lengths.

    Happens when the extractor changed between enrollment and verification.
    Not automatically recoverable.
    """

    default_code = "DIMENSION_MISMATCH"


class MalformedSignature(FaceLedgerError):
    """Stored signature bytes cannot be decoded into an embedding."""

    default_code = "MALFORMED_SIGNATURE"


# ============================================================
# Ledger errors
# ============================================================

class AlreadyEnrolled(FaceLedgerError):
    """A signature is already committed for the account (write-once)."""

    default_code = "ALREADY_ENROLLED"


class NotEnrolled(FaceLedgerError):
    """Verification attempted for an account with no committed signature."""

    default_code = "NOT_ENROLLED"


class Unauthorized(FaceLedgerError):
    """The caller is not allowed to perform this ledger write."""

    default_code = "UNAUTHORIZED"


class LedgerUnavailable(FaceLedgerError):
    """The ledger backend could not be reached or failed mid-operation."""

    default_code = "LEDGER_UNAVAILABLE"


# ============================================================
# Relay client errors
# ============================================================

class RelayError(FaceLedgerError):
    """
    The relay service rejected an override or could not be reached.

    Attributes:
        status_code: HTTP status returned by the relay, or None for
                     transport failures.
    """

    default_code = "RELAY_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status_code = status_code

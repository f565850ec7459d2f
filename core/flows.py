"""
Enrollment and verification flows.

Enrollment:
    capture -> extract embedding -> encode -> ledger.enroll
Verification:
    capture -> extract embedding -> ledger.get_record -> decode -> compare

Verification is read-only on the ledger. Its boolean result is informational
and never changes the record's verified flag; only the admin relay does.

The *_embedding functions implement the protocol from an already extracted
embedding; the *_face coroutines add the capture step on top of a
FaceAuthSession.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from core.exceptions import NoFaceDetected, NotEnrolled
from core.ledger.interfaces import IdentityLedger, IdentityRecord
from core.session import FaceAuthSession
from core.signature_codec import SignatureCodec
from core.verification import VerificationEngine, VerificationResult

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentResult:
    """Outcome of a successful enrollment."""

    account: str
    signature: bytes
    record: IdentityRecord


def enroll_embedding(
    ledger: IdentityLedger,
    account: str,
    embedding,
    codec: Optional[SignatureCodec] = None,
) -> EnrollmentResult:
    """
    Encode an embedding and commit it as the account's signature.

    The account enrolls itself: it is both the caller and the target.

    Raises:
        AlreadyEnrolled: If the account already has a signature.
        DimensionMismatch: If the codec expects a different embedding length.
    """
    codec = codec or SignatureCodec()
    signature = codec.encode(embedding)

    record = ledger.enroll(account, account, signature)

    logger.info(f"Enrollment committed for {account} ({len(signature)} bytes)")
    return EnrollmentResult(account=account, signature=signature, record=record)


def load_enrolled_embedding(
    ledger: IdentityLedger,
    account: str,
    codec: Optional[SignatureCodec] = None,
) -> np.ndarray:
    """
    Read and decode the committed signature of an account.

    Raises:
        NotEnrolled: If the account has no committed signature.
        MalformedSignature: If the stored bytes cannot be decoded.
    """
    codec = codec or SignatureCodec()
    record = ledger.get_record(account)

    if not record.is_enrolled:
        raise NotEnrolled(
            f"No registered face found for {account}",
            context={"account": account},
        )

    return codec.decode(record.signature)


def verify_embedding(
    ledger: IdentityLedger,
    account: str,
    embedding,
    engine: Optional[VerificationEngine] = None,
    codec: Optional[SignatureCodec] = None,
) -> VerificationResult:
    """
    Compare an embedding with the account's committed signature.

    Raises:
        NotEnrolled: If the account has no committed signature.
        MalformedSignature: If the stored bytes cannot be decoded.
        DimensionMismatch: If the embedding lengths differ.
    """
    engine = engine or VerificationEngine()
    enrolled = load_enrolled_embedding(ledger, account, codec)

    result = engine.compare(embedding, enrolled)

    logger.info(
        f"Verification for {account}: distance={result.distance:.4f} "
        f"threshold={result.threshold} match={result.is_match}"
    )
    return result


async def capture_with_retry(session: FaceAuthSession) -> np.ndarray:
    """
    Capture an embedding, retrying up to session.max_attempts times when no
    face is found. Any other error is raised immediately.

    Raises:
        NoFaceDetected: If every attempt found no face.
    """
    last_error: Optional[NoFaceDetected] = None

    for attempt in range(1, session.max_attempts + 1):
        try:
            return await session.capture_embedding()
        except NoFaceDetected as e:
            last_error = e
            logger.warning(f"No face detected (attempt {attempt}/{session.max_attempts})")

    raise NoFaceDetected(
        f"No face detected after {session.max_attempts} attempt(s)",
        context={"account": session.account, "attempts": session.max_attempts},
    ) from last_error


async def enroll_face(session: FaceAuthSession) -> EnrollmentResult:
    """Capture the session holder's face and commit it to the ledger."""
    embedding = await capture_with_retry(session)
    return enroll_embedding(session.ledger, session.account, embedding, session.codec)


async def verify_face(session: FaceAuthSession) -> VerificationResult:
    """Capture the session holder's face and compare it with the ledger."""
    embedding = await capture_with_retry(session)
    return verify_embedding(
        session.ledger,
        session.account,
        embedding,
        engine=session.engine,
        codec=session.codec,
    )

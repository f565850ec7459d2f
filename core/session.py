"""
Face Authentication Session

Holds everything one enrollment or verification needs: the account, the
ledger, the frame source, the embedding extractor, the verification engine
and the signature codec. Sessions are passed explicitly to the flow
functions in core.flows instead of living in module-level state.

The frame source is acquired when the session is entered and released when
it is exited, whether the flow succeeded, failed or was cancelled.

Usage:
    async with FaceAuthSession.from_config(account="0xabc") as session:
        result = await verify_face(session)
"""

import asyncio
import logging
import threading
from typing import Optional

import numpy as np

from core.camera import CaptureConfig, FrameSource, WebcamCapture
from core.exceptions import CameraUnavailable, CaptureTimeout
from core.face_embedder import SignatureExtractor
from core.ledger.interfaces import IdentityLedger, validate_account
from core.signature_codec import SignatureCodec
from core.verification import VerificationEngine

logger = logging.getLogger(__name__)


class FaceAuthSession:
    """
    Per-request context for the enrollment and verification flows.

    Attributes:
        account: Account identifier the session acts for (the caller).
        ledger: Identity ledger to read from and enroll into.
        extractor: Face embedding extractor.
        source: Frame source, opened on entry and closed on exit.
        engine: Verification engine holding the match threshold.
        codec: Signature codec shared by enrollment and verification.
        capture_timeout: Seconds allowed for one frame grab + extraction,
                         or None for no limit.
        max_attempts: Capture attempts when no face is found.
    """

    def __init__(
        self,
        account: str,
        ledger: IdentityLedger,
        extractor: SignatureExtractor,
        source: FrameSource,
        engine: Optional[VerificationEngine] = None,
        codec: Optional[SignatureCodec] = None,
        capture_timeout: Optional[float] = 10.0,
        max_attempts: int = 1,
    ):
        self.account = validate_account(account)
        self.ledger = ledger
        self.extractor = extractor
        self.source = source
        self.engine = engine or VerificationEngine()
        self.codec = codec or SignatureCodec()
        self.capture_timeout = capture_timeout
        self.max_attempts = max(1, int(max_attempts))
        self._active = False
        # Held while a worker thread reads from the source; close waits for it
        self._source_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        account: str,
        ledger: Optional[IdentityLedger] = None,
        extractor: Optional[SignatureExtractor] = None,
        source: Optional[FrameSource] = None,
    ) -> "FaceAuthSession":
        """
        Build a session from config.yaml, filling in any collaborator that
        is not passed explicitly.
        """
        from core.config import get_config

        config = get_config()
        capture_config = config.get("capture", {})
        verification_config = config.get("verification", {})

        if ledger is None:
            from core.ledger import get_ledger
            ledger = get_ledger()

        if extractor is None:
            from core.face_embedder import FaceEmbedder
            embedding_config = dict(config.get("face_embedding", {}))
            embedding_config.setdefault("embedding_dim", verification_config.get("embedding_dim", 512))
            extractor = FaceEmbedder(embedding_config)

        if source is None:
            source = WebcamCapture(CaptureConfig.from_config(capture_config))

        return cls(
            account=account,
            ledger=ledger,
            extractor=extractor,
            source=source,
            engine=VerificationEngine.from_config(verification_config),
            codec=SignatureCodec.from_config(config.get("signature", {}), verification_config),
            capture_timeout=capture_config.get("timeout_sec", 10.0),
            max_attempts=capture_config.get("max_attempts", 1),
        )

    async def __aenter__(self) -> "FaceAuthSession":
        await asyncio.to_thread(self.source.open)
        self._active = True
        logger.debug(f"Session opened for {self.account}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._active = False
        await asyncio.to_thread(self._close_source)
        logger.debug(f"Session closed for {self.account}")
        return False

    @property
    def is_active(self) -> bool:
        return self._active

    def _close_source(self) -> None:
        with self._source_lock:
            self.source.close()

    def _capture_once(self) -> np.ndarray:
        # A capture abandoned by a timeout may start after the session closed
        with self._source_lock:
            if not self._active:
                raise CameraUnavailable("Session closed before the frame was read")
            frame = self.source.read_frame()
        return self.extractor.extract(frame)

    async def capture_embedding(self) -> np.ndarray:
        """
        Grab one frame and extract its face embedding.

        Extraction runs in a worker thread so the event loop stays free.

        Raises:
            CameraUnavailable: If the session has not been entered.
            CaptureTimeout: If capture + extraction exceeds capture_timeout.
            NoFaceDetected: If the frame contains no face.
        """
        if not self._active:
            raise CameraUnavailable("Session is not open; use 'async with session'")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._capture_once),
                timeout=self.capture_timeout,
            )
        except asyncio.TimeoutError as e:
            raise CaptureTimeout(
                f"Capture did not complete within {self.capture_timeout}s",
                context={"account": self.account},
            ) from e

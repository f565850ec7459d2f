"""
Identity Record API Routes

Read-only view of the identity ledger:
- GET /records/{account}: enrollment state, verified flag and signature

The signature is the stored face template, so reads need the same
X-Relay-Key as overrides.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.schemas import ErrorResponse, IdentityRecordResponse
from api.security import require_relay_key
from core.ledger import get_ledger
from core.signature_codec import ELEMENT_WIDTH, to_hex

# Create router
router = APIRouter(tags=["records"])


@router.get(
    "/records/{account}",
    response_model=IdentityRecordResponse,
    dependencies=[Depends(require_relay_key)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def get_record(account: str):
    """
    Get the ledger record of an account.

    Accounts that were never written read back with default values
    (not enrolled, not verified) instead of a 404.
    """
    try:
        record = get_ledger().get_record(account)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return IdentityRecordResponse(
        account=record.account,
        enrolled=record.is_enrolled,
        verified=record.verified,
        signature=to_hex(record.signature) if record.is_enrolled else None,
        embedding_dim=len(record.signature) // ELEMENT_WIDTH if record.is_enrolled else None,
        enrolled_at=record.enrolled_at,
    )

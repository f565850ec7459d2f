"""
Admin Relay API Routes

This module provides the operator override endpoint:
- POST /verify-user: set an account's verified flag on the ledger

The endpoint does not run face matching. It forwards the operator's
decision to the ledger with the relay's administrative identity. Ledger
errors are returned to the caller as an error message and non-2xx status
(see the exception handlers in api.app); nothing is retried.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.schemas import VerifyUserRequest, VerifyUserResponse, ErrorResponse
from api.security import require_relay_key
from core.admin_relay import get_admin_relay

# Setup logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["relay"])


@router.post(
    "/verify-user",
    response_model=VerifyUserResponse,
    dependencies=[Depends(require_relay_key)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def verify_user(request: VerifyUserRequest):
    """
    Override the verified flag of an account.

    Args:
        request: {"userAddress": ..., "isVerified": ...}

    Returns:
        {"success": true} once the ledger accepted the write.
    """
    logger.info(f"Override request: account={request.user_address} verified={request.is_verified}")

    relay = get_admin_relay()
    try:
        relay.set_verified(request.user_address, request.is_verified)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return VerifyUserResponse(success=True)

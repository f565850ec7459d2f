"""
Relay API authentication.

The override endpoint changes trust decisions on the ledger, so every
request must carry the operator key in the X-Relay-Key header. The key is
read from the environment variable named by relay.api_key_env; when that
variable is unset the endpoint refuses all requests.
"""

import hmac
import logging
import os
from typing import Optional

from fastapi import Header, HTTPException

from core.config import get_relay_config

logger = logging.getLogger(__name__)

DEFAULT_KEY_ENV = "FACELEDGER_RELAY_KEY"


def get_relay_key() -> Optional[str]:
    """Return the configured relay key, or None if it is not set."""
    env_name = get_relay_config().get("api_key_env", DEFAULT_KEY_ENV)
    return os.environ.get(env_name) or None


async def require_relay_key(x_relay_key: Optional[str] = Header(None)) -> None:
    """FastAPI dependency rejecting requests without a valid relay key."""
    expected = get_relay_key()

    if expected is None:
        logger.error("Relay key is not configured; refusing override request")
        raise HTTPException(status_code=503, detail="Relay API key is not configured")

    if x_relay_key is None or not hmac.compare_digest(x_relay_key, expected):
        logger.warning("Rejected override request with missing or invalid relay key")
        raise HTTPException(status_code=401, detail="Invalid or missing relay key")

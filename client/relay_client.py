"""
HTTP client for the FaceLedger relay API.

Used by operator tooling to send overrides and read ledger records over the
relay's REST interface.

Usage:
    from client.relay_client import RelayClient

    with RelayClient("http://localhost:3001", api_key="...") as client:
        client.verify_user("0xabc", True)
        record = client.get_record("0xabc")
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from core.exceptions import RelayError

logger = logging.getLogger(__name__)

RELAY_KEY_HEADER = "X-Relay-Key"


class RelayClient:
    """
    Synchronous relay API client.

    Failures are raised as RelayError carrying the relay's error message and
    HTTP status. Requests are not retried.

    Args:
        base_url: Relay service URL, e.g. "http://localhost:3001".
        api_key: Operator key sent in the X-Relay-Key header.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {RELAY_KEY_HEADER: api_key} if api_key else {}
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Relay request {method} {path} failed: {e}")
            raise RelayError(f"Relay unreachable: {e}") from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = None

        # Proxies in front of the relay may answer with non-object JSON
        message = (body.get("error") if isinstance(body, dict) else None) or response.text

        logger.warning(f"Relay {method} {path} returned {response.status_code}: {message}")
        raise RelayError(message, status_code=response.status_code)

    def verify_user(self, user_address: str, is_verified: bool) -> Dict[str, Any]:
        """Send an override instruction. Returns the relay acknowledgment."""
        return self._request(
            "POST",
            "/verify-user",
            json={"userAddress": user_address, "isVerified": bool(is_verified)},
        )

    def get_record(self, account: str) -> Dict[str, Any]:
        """Read an account's ledger record through the relay."""
        return self._request("GET", f"/records/{quote(account, safe='')}")

    def health(self) -> Dict[str, Any]:
        """Fetch the relay health status."""
        return self._request("GET", "/health")

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

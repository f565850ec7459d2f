"""
Client-side access to the FaceLedger relay service.
"""

from client.relay_client import RelayClient

__all__ = ["RelayClient"]

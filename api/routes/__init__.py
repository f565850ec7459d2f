"""
API Routes Package

This package contains route handlers organized by feature:
- relay.py: Operator override of the verified flag
- records.py: Read-only ledger record lookup
"""

from api.routes.relay import router as relay_router
from api.routes.records import router as records_router

__all__ = [
    "relay_router",
    "records_router",
]

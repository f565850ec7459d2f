"""
API Layer for FaceLedger

This package provides the FastAPI-based relay service that exposes:
- POST /verify-user for authenticated operator overrides
- GET /records/{account} for reading ledger records
- Health check endpoints
"""

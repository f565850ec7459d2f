"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application for the
FaceLedger relay service.

The application provides:
- POST /verify-user: authenticated operator override of the verified flag
- GET /records/{account}: authenticated ledger record lookup
- Health check endpoint

Every error leaves the service as {"error": "<message>", "code": "<code>"}
with a non-2xx status.

Usage:
    # From project root:
    uvicorn api.app:app --host 0.0.0.0 --port 3001 --reload

    # Or run directly:
    python -m api.app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes.relay import router as relay_router
from api.routes.records import router as records_router
from api.schemas import HealthResponse
from api.security import get_relay_key
from core.config import get_config
from core.exceptions import (
    FaceLedgerError,
    AlreadyEnrolled,
    DimensionMismatch,
    LedgerUnavailable,
    MalformedSignature,
    NotEnrolled,
    Unauthorized,
)
from core.admin_relay import reset_admin_relay
from core.ledger import get_ledger, reset_ledger


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# HTTP status for each domain error surfaced by the API
ERROR_STATUS = {
    Unauthorized: 403,
    AlreadyEnrolled: 409,
    NotEnrolled: 404,
    MalformedSignature: 422,
    DimensionMismatch: 422,
    LedgerUnavailable: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup:
    - Open the identity ledger
    - Warn when the relay key is missing

    Runs on shutdown:
    - Close the ledger connection
    """
    logger.info("=" * 60)
    logger.info("Starting FaceLedger relay API")
    logger.info("=" * 60)

    ledger = get_ledger()
    logger.info(f"Ledger ready (admin identity: {ledger.admin_identity})")

    if get_relay_key() is None:
        logger.warning("Relay API key is not set - POST /verify-user will refuse all requests")

    logger.info("API startup complete!")

    yield

    logger.info("Shutting down API...")
    reset_admin_relay()
    reset_ledger()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="FaceLedger Relay API",
    description="""
Relay service for the face identity ledger.

## Features
- **Override**: An operator sets an account's verified flag (`POST /verify-user`,
  requires the `X-Relay-Key` header). The relay does not run face matching.
- **Records**: Read an account's enrollment state and verified flag (`GET /records/{account}`,
  also requires `X-Relay-Key`).
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for operator console access
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().get("api", {}).get("cors_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(relay_router)
app.include_router(records_router)


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(FaceLedgerError)
async def faceledger_error_handler(request: Request, exc: FaceLedgerError):
    """Map domain errors to an error message and a non-2xx status."""
    status_code = 500
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    logger.warning(f"{request.method} {request.url.path} failed: {exc.to_dict()}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "code": exc.error_code},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": None},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content={"error": messages or "Invalid request", "code": "VALIDATION_ERROR"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "code": "INTERNAL_ERROR"},
    )


# ============================================================
# Health Check Endpoint
# ============================================================

@app.get("/health", response_model=HealthResponse, tags=["system"])
def health_check():
    """
    Check the health of the relay and its dependencies.

    Returns status of:
    - Ledger reachability and enrolled account count
    - Whether the relay API key is configured
    """
    ledger_available = True
    enrolled_accounts = None

    try:
        ledger = get_ledger()
        if hasattr(ledger, "count_enrolled"):
            enrolled_accounts = ledger.count_enrolled()
    except LedgerUnavailable as e:
        logger.warning(f"Health check: ledger unavailable: {e}")
        ledger_available = False

    relay_key_configured = get_relay_key() is not None
    status = "healthy" if ledger_available and relay_key_configured else "degraded"

    return HealthResponse(
        status=status,
        ledger_available=ledger_available,
        relay_key_configured=relay_key_configured,
        enrolled_accounts=enrolled_accounts,
    )


@app.get("/", tags=["system"])
def root():
    """Root endpoint with API information."""
    return {
        "name": "FaceLedger Relay API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    from core.config import get_server_config

    server = get_server_config()

    logger.info(f"Starting server on {server['host']}:{server['port']}")
    uvicorn.run(
        "api.app:app",
        host=server["host"],
        port=server["port"],
        reload=True,
        log_level="info",
    )

"""
Pydantic Schemas for API Request/Response Models

This module defines the data models used by the relay API.

These schemas provide:
- Type validation
- Automatic documentation in OpenAPI/Swagger
- Clear interface contracts

The relay request keeps the camelCase field names of the operator channel
(`userAddress`, `isVerified`); Python code uses the snake_case attributes.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, StrictBool


# ============================================================
# Relay Schemas
# ============================================================

class VerifyUserRequest(BaseModel):
    """Operator instruction to set an account's verified flag."""
    model_config = ConfigDict(populate_by_name=True)

    user_address: str = Field(
        ...,
        alias="userAddress",
        min_length=1,
        description="Account identifier whose flag is changed",
    )
    is_verified: StrictBool = Field(
        ...,
        alias="isVerified",
        description="New value of the verified flag",
    )


class VerifyUserResponse(BaseModel):
    """Acknowledgment of an accepted override."""
    success: bool = Field(True, description="Always true on 2xx responses")


class ErrorResponse(BaseModel):
    """Error body returned with every non-2xx status."""
    error: str = Field(..., description="Error message")
    code: Optional[str] = Field(None, description="Stable error code")


# ============================================================
# Record Schemas
# ============================================================

class IdentityRecordResponse(BaseModel):
    """Public view of one ledger record."""
    account: str = Field(..., description="Account identifier")
    enrolled: bool = Field(..., description="Whether a signature is committed")
    verified: bool = Field(..., description="Verification flag set by the relay")
    signature: Optional[str] = Field(None, description="0x-prefixed hex signature, if enrolled")
    embedding_dim: Optional[int] = Field(None, description="Number of float32 values in the signature")
    enrolled_at: Optional[str] = Field(None, description="ISO timestamp of enrollment")


# ============================================================
# Health Check Schemas
# ============================================================

class HealthResponse(BaseModel):
    """System health check response."""
    status: str = Field(..., description="Overall status: 'healthy' or 'degraded'")
    ledger_available: bool = Field(..., description="Whether the ledger answered")
    relay_key_configured: bool = Field(..., description="Whether the relay API key is set")
    enrolled_accounts: Optional[int] = Field(None, description="Number of enrolled accounts")

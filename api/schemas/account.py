"""
Account Schemas

Pydantic models for issuer and holder account requests and responses.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from bluetrust.types import HolderAccount, LedgerEntry


# ============================================================================
# Issuer Schemas
# ============================================================================


class IssuerCreateRequest(BaseModel):
    """Request to open an issuer account"""

    id: str = Field(description="Unique account id")
    name: str = Field(description="Organization name")
    unit_price: int | None = Field(None, description="Listed price per credit (default from settings)")
    rating: float = Field(default=0.0, description="Marketplace rating 0-5")
    region: str | None = Field(None, description="Home region")
    registration_number: str | None = Field(None, description="Registration number")


class PriceUpdateRequest(BaseModel):
    """Request to change an issuer's listed price"""

    unit_price: int = Field(description="New price per credit")


class RatingUpdateRequest(BaseModel):
    """Request to change an issuer's rating"""

    rating: float = Field(description="New rating 0-5")


# ============================================================================
# Holder Schemas
# ============================================================================


class HolderCreateRequest(BaseModel):
    """Request to open a holder account"""

    id: str = Field(description="Unique account id")
    name: str = Field(description="Company name")
    target_offset: int = Field(default=0, description="Offset goal in credits (reporting only)")


class HolderResponse(BaseModel):
    """Holder account with offset progress"""

    id: str
    name: str
    held: int
    retired: int
    purchased: int
    target_offset: int
    offset_percentage: float = Field(description="(held + retired) / target_offset * 100")
    created_at: datetime

    @classmethod
    def from_account(cls, holder: HolderAccount) -> "HolderResponse":
        return cls(**holder.model_dump(), offset_percentage=round(holder.offset_percentage, 2))


class RetireRequest(BaseModel):
    """Request to retire held credits"""

    amount: int = Field(description="Credits to retire")
    reason: str = Field(description="Retirement reason (e.g. 'FY2025 offset')")


class RetireResponse(BaseModel):
    """Result of a retirement"""

    holder: HolderResponse
    entry: LedgerEntry
    anchor_error: str | None = None

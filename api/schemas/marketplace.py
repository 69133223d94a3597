"""
Marketplace and Ledger Schemas

Pydantic models for listings, purchases and ledger queries.
"""

from pydantic import BaseModel, Field

from bluetrust.types import LedgerEntry, Listing


# ============================================================================
# Marketplace Schemas
# ============================================================================


class ListingsResponse(BaseModel):
    """Marketplace listings, best-rated first"""

    listings: list[Listing]
    total: int


class PurchaseRequest(BaseModel):
    """Request to buy credits from an issuer"""

    holder_id: str = Field(description="Buying holder account")
    issuer_id: str = Field(description="Selling issuer account")
    quantity: int = Field(description="Number of credits")


class QuoteResponse(BaseModel):
    """Price quote"""

    issuer_id: str
    quantity: int
    unit_price: int
    total_cost: int


# ============================================================================
# Ledger Schemas
# ============================================================================


class LedgerEntriesResponse(BaseModel):
    """Ledger audit log page"""

    entries: list[LedgerEntry]
    total: int = Field(description="Entries matching the filters")
    limit: int
    offset: int
    has_more: bool

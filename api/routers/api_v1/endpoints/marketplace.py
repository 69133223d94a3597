"""
Marketplace Endpoints

FastAPI endpoints for credit listings, quotes and purchases.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies.engine import get_engine
from api.schemas.marketplace import ListingsResponse, PurchaseRequest, QuoteResponse
from api.utils.errors import to_http_exception
from bluetrust.engine import BlueTrustEngine
from bluetrust.errors import BlueTrustError
from bluetrust.types import PurchaseReceipt


router = APIRouter()


@router.get("/listings", response_model=ListingsResponse, summary="List available credits")
async def list_available(engine: BlueTrustEngine = Depends(get_engine)) -> ListingsResponse:
    """Issuers with credits for sale, by rating (desc), price (asc), then id"""
    listings = list(engine.list_available())
    return ListingsResponse(listings=listings, total=len(listings))


@router.get("/quote", response_model=QuoteResponse, summary="Quote a purchase")
async def quote(
    issuer_id: str = Query(description="Selling issuer"),
    quantity: int = Query(description="Number of credits"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> QuoteResponse:
    try:
        total_cost = engine.quote(issuer_id, quantity)
        return QuoteResponse(
            issuer_id=issuer_id,
            quantity=quantity,
            unit_price=engine.get_issuer(issuer_id).unit_price,
            total_cost=total_cost,
        )
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.post("/purchases", response_model=PurchaseReceipt, status_code=201, summary="Purchase credits")
async def purchase(
    request: PurchaseRequest,
    engine: BlueTrustEngine = Depends(get_engine),
) -> PurchaseReceipt:
    """
    Buy credits from an issuer.

    **Errors:**
    - 422 if quantity is not a positive integer
    - 409 if quantity exceeds the issuer's available balance (nothing is transferred)
    """
    try:
        return await engine.purchase(request.holder_id, request.issuer_id, request.quantity)
    except BlueTrustError as e:
        raise to_http_exception(e)

"""
Account Endpoints

FastAPI endpoints for issuer (restoration organization) and holder
(purchasing company) accounts.
"""

from fastapi import APIRouter, Depends, Path

from api.dependencies.engine import get_engine
from api.schemas.account import (
    HolderCreateRequest,
    HolderResponse,
    IssuerCreateRequest,
    PriceUpdateRequest,
    RatingUpdateRequest,
    RetireRequest,
    RetireResponse,
)
from api.utils.errors import to_http_exception
from api.utils.security import require_verifier
from bluetrust.engine import BlueTrustEngine
from bluetrust.errors import BlueTrustError
from bluetrust.types import IssuerAccount


issuers_router = APIRouter()
holders_router = APIRouter()


# ============================================================================
# Issuers
# ============================================================================


@issuers_router.post("", response_model=IssuerAccount, status_code=201, summary="Open issuer account")
async def create_issuer(
    request: IssuerCreateRequest,
    engine: BlueTrustEngine = Depends(get_engine),
) -> IssuerAccount:
    try:
        return engine.register_issuer(
            request.id,
            request.name,
            unit_price=request.unit_price,
            rating=request.rating,
            region=request.region,
            registration_number=request.registration_number,
        )
    except BlueTrustError as e:
        raise to_http_exception(e)


@issuers_router.get("/{issuer_id}", response_model=IssuerAccount, summary="Get issuer account")
async def get_issuer(
    issuer_id: str = Path(description="Issuer id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> IssuerAccount:
    try:
        return engine.get_issuer(issuer_id)
    except BlueTrustError as e:
        raise to_http_exception(e)


@issuers_router.put("/{issuer_id}/price", response_model=IssuerAccount, summary="Set unit price")
async def set_unit_price(
    request: PriceUpdateRequest,
    issuer_id: str = Path(description="Issuer id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> IssuerAccount:
    """Set the listed price per credit; out-of-range prices are rejected and the old price kept"""
    try:
        return await engine.set_unit_price(issuer_id, request.unit_price)
    except BlueTrustError as e:
        raise to_http_exception(e)


@issuers_router.put(
    "/{issuer_id}/rating",
    response_model=IssuerAccount,
    summary="Set issuer rating",
    dependencies=[Depends(require_verifier)],
)
async def set_rating(
    request: RatingUpdateRequest,
    issuer_id: str = Path(description="Issuer id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> IssuerAccount:
    try:
        return await engine.set_rating(issuer_id, request.rating)
    except BlueTrustError as e:
        raise to_http_exception(e)


# ============================================================================
# Holders
# ============================================================================


@holders_router.post("", response_model=HolderResponse, status_code=201, summary="Open holder account")
async def create_holder(
    request: HolderCreateRequest,
    engine: BlueTrustEngine = Depends(get_engine),
) -> HolderResponse:
    try:
        holder = engine.register_holder(request.id, request.name, request.target_offset)
        return HolderResponse.from_account(holder)
    except BlueTrustError as e:
        raise to_http_exception(e)


@holders_router.get("/{holder_id}", response_model=HolderResponse, summary="Get holder account")
async def get_holder(
    holder_id: str = Path(description="Holder id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> HolderResponse:
    try:
        return HolderResponse.from_account(engine.get_holder(holder_id))
    except BlueTrustError as e:
        raise to_http_exception(e)


@holders_router.post("/{holder_id}/retire", response_model=RetireResponse, summary="Retire credits")
async def retire_credits(
    request: RetireRequest,
    holder_id: str = Path(description="Holder id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> RetireResponse:
    """
    Permanently retire held credits.

    Retired credits count towards the holder's offset and can never be
    traded again.
    """
    try:
        receipt = await engine.retire(holder_id, request.amount, request.reason)
        return RetireResponse(
            holder=HolderResponse.from_account(engine.get_holder(holder_id)),
            entry=receipt.entry,
            anchor_error=receipt.anchor_error,
        )
    except BlueTrustError as e:
        raise to_http_exception(e)

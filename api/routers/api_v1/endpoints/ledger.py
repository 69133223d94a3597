"""
Ledger Endpoints

FastAPI endpoints for the ledger audit log, credit supply and registry
statistics.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies.engine import get_engine
from api.schemas.marketplace import LedgerEntriesResponse
from api.utils.errors import to_http_exception
from bluetrust.engine import BlueTrustEngine
from bluetrust.enums import EntryKind
from bluetrust.errors import BlueTrustError
from bluetrust.types import RegistryStats, SupplySnapshot


router = APIRouter()
stats_router = APIRouter()


@router.get("/entries", response_model=LedgerEntriesResponse, summary="Ledger audit log")
async def list_entries(
    account_id: str | None = Query(None, description="Filter by source or destination account"),
    kind: EntryKind | None = Query(None, description="Filter by entry kind"),
    limit: int = Query(default=50, ge=1, le=500, description="Number of results to return (1-500)"),
    offset: int = Query(default=0, ge=0, description="Offset for pagination"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> LedgerEntriesResponse:
    entries = engine.entries(account_id=account_id, kind=kind)
    page = entries[offset : offset + limit]
    return LedgerEntriesResponse(
        entries=page,
        total=len(entries),
        limit=limit,
        offset=offset,
        has_more=offset + len(page) < len(entries),
    )


@router.get("/supply", response_model=SupplySnapshot, summary="Credit supply")
async def supply(engine: BlueTrustEngine = Depends(get_engine)) -> SupplySnapshot:
    """Minted, retired and circulating credits, checked against account balances"""
    try:
        return engine.supply()
    except BlueTrustError as e:
        raise to_http_exception(e)


@stats_router.get("", response_model=RegistryStats, summary="Registry statistics")
async def registry_stats(engine: BlueTrustEngine = Depends(get_engine)) -> RegistryStats:
    return engine.stats()

from fastapi import APIRouter

from api.routers.api_v1.endpoints import accounts, ledger, marketplace, projects


api_router = APIRouter()

api_router.include_router(accounts.issuers_router, prefix="/issuers", tags=["Issuers"])
api_router.include_router(accounts.holders_router, prefix="/holders", tags=["Holders"])
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(marketplace.router, prefix="/marketplace", tags=["Marketplace"])
api_router.include_router(ledger.router, prefix="/ledger", tags=["Ledger"])
api_router.include_router(ledger.stats_router, prefix="/stats", tags=["Statistics"])

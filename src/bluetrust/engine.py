"""
BlueTrust Engine

Facade over the state machine, ledger and marketplace. This is the inbound
interface for presentation layers: every call names its accounts
explicitly; the engine keeps no notion of a current user.
"""

import logging
from datetime import date

from bluetrust.anchoring import LedgerAnchor, build_anchor
from bluetrust.config import DEFAULT_COASTAL_REGIONS, DEFAULT_REFERENCE_SITES, EngineSettings
from bluetrust.enums import EntryKind, ProjectStatus
from bluetrust.errors import OracleUnavailable
from bluetrust.geo import assess_site_suitability
from bluetrust.ledger import CreditLedger
from bluetrust.locks import LockRegistry
from bluetrust.marketplace import Listings, Marketplace
from bluetrust.oracle import VerificationOracle, build_oracle
from bluetrust.projects import ProjectStateMachine
from bluetrust.stats import registry_stats
from bluetrust.types import (
    ApprovalOverride,
    Assessment,
    HolderAccount,
    IssuerAccount,
    LedgerEntry,
    LedgerReceipt,
    Project,
    ProjectAttributes,
    PurchaseReceipt,
    RegistryStats,
    RejectionOverride,
    SiteSuitability,
    SupplySnapshot,
    TimeSeriesPoint,
)


logger = logging.getLogger(__name__)


class BlueTrustEngine:
    """
    Verification-and-ledger engine

    Usage:
        engine = BlueTrustEngine(EngineSettings(oracle_seed=7))
        engine.register_issuer("NGO001", "Coastal Conservation Society")
        project = engine.register_project("NGO001", attributes)
        project = await engine.verify(project.id)
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        oracle: VerificationOracle | None = None,
        anchor: LedgerAnchor | None = None,
    ):
        self.settings = settings if settings is not None else EngineSettings()
        self.locks = LockRegistry()
        self.oracle = oracle if oracle is not None else build_oracle(self.settings)
        if anchor is None:
            anchor = build_anchor(self.settings)
        self.ledger = CreditLedger(self.settings, self.locks, anchor)
        self.projects = ProjectStateMachine(self.ledger, self.oracle, self.settings, self.locks)
        self.marketplace = Marketplace(self.ledger)

    # ============================================================================
    # Accounts
    # ============================================================================

    def register_issuer(
        self,
        issuer_id: str,
        name: str,
        unit_price: int | None = None,
        rating: float = 0.0,
        region: str | None = None,
        registration_number: str | None = None,
    ) -> IssuerAccount:
        return self.ledger.open_issuer(issuer_id, name, unit_price, rating, region, registration_number)

    def register_holder(self, holder_id: str, name: str, target_offset: int = 0) -> HolderAccount:
        return self.ledger.open_holder(holder_id, name, target_offset)

    def get_issuer(self, issuer_id: str) -> IssuerAccount:
        return self.ledger.get_issuer(issuer_id)

    def get_holder(self, holder_id: str) -> HolderAccount:
        return self.ledger.get_holder(holder_id)

    # ============================================================================
    # Projects
    # ============================================================================

    def register_project(self, issuer_id: str, attributes: ProjectAttributes) -> Project:
        return self.projects.register(issuer_id, attributes)

    async def request_verification(self, project_id: str) -> Assessment:
        return await self.projects.request_verification(project_id)

    async def decide(
        self,
        project_id: str,
        assessment: Assessment | None = None,
        override: ApprovalOverride | RejectionOverride | None = None,
    ) -> Project:
        return await self.projects.decide(project_id, assessment, override)

    async def verify(self, project_id: str) -> Project:
        return await self.projects.verify(project_id)

    async def reject(self, project_id: str, reason: str = "rejected by verifier") -> Project:
        return await self.projects.reject(project_id, reason)

    def get_project(self, project_id: str) -> Project:
        return self.projects.get(project_id)

    def list_projects(self, issuer_id: str | None = None, status: ProjectStatus | None = None) -> list[Project]:
        return self.projects.list_projects(issuer_id, status)

    def verification_queue(self) -> list[Project]:
        return self.projects.verification_queue()

    def estimated_credits(self, project_id: str) -> int:
        return self.projects.estimated_credits(project_id)

    def site_suitability(self, project_id: str) -> SiteSuitability:
        """Restoration suitability of a project's location"""
        location = self.projects.get(project_id).location
        return assess_site_suitability(
            location.latitude, location.longitude, DEFAULT_REFERENCE_SITES, DEFAULT_COASTAL_REGIONS
        )

    def time_series(self, project_id: str, months: int = 12, today: date | None = None) -> list[TimeSeriesPoint]:
        """
        Monthly vegetation series for a project

        Raises:
            NotFound: Unknown project
            OracleUnavailable: The configured oracle does not provide time series
        """
        self.projects.get(project_id)
        series = getattr(self.oracle, "time_series", None)
        if series is None:
            raise OracleUnavailable("The configured oracle does not provide time series", project_id=project_id)
        return series(months, today)

    # ============================================================================
    # Marketplace and ledger
    # ============================================================================

    def list_available(self) -> Listings:
        return self.marketplace.list_available()

    def quote(self, issuer_id: str, quantity: int) -> int:
        return self.marketplace.quote(issuer_id, quantity)

    async def purchase(self, holder_id: str, issuer_id: str, quantity: int) -> PurchaseReceipt:
        return await self.marketplace.purchase(holder_id, issuer_id, quantity)

    async def set_unit_price(self, issuer_id: str, price: int) -> IssuerAccount:
        return await self.marketplace.set_unit_price(issuer_id, price)

    async def set_rating(self, issuer_id: str, rating: float) -> IssuerAccount:
        return await self.marketplace.set_rating(issuer_id, rating)

    async def retire(self, holder_id: str, amount: int, reason: str) -> LedgerReceipt:
        return await self.ledger.retire(holder_id, amount, reason)

    def entries(self, account_id: str | None = None, kind: EntryKind | None = None) -> list[LedgerEntry]:
        return self.ledger.entries.query(account_id, kind)

    def supply(self) -> SupplySnapshot:
        return self.ledger.check_conservation()

    def stats(self) -> RegistryStats:
        return registry_stats(self.projects, self.ledger)

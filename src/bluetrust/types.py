"""
Domain Types

Pydantic models for projects, accounts, ledger entries and oracle
assessments. Entities are replaced as a whole on write (see repositories),
so a reader never sees a half-updated record.
"""

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field

from bluetrust.enums import ChangeType, EntryKind, ProjectStatus, SiteTrend, Suitability


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Geospatial Types
# ============================================================================


class Location(BaseModel):
    """Project location"""

    latitude: float
    longitude: float
    name: str = ""


class ReferenceSite(BaseModel):
    """Known site with a baseline vegetation reading"""

    name: str
    latitude: float
    longitude: float
    vegetation_index: float = Field(ge=0, le=100)
    trend: SiteTrend = SiteTrend.STABLE
    confidence: float = Field(default=0.94, ge=0, le=1)
    radius_km: float = Field(default=25.0, gt=0, description="Radius within which a location counts as this site")


class CoastalRegion(BaseModel):
    """Bounding box of a coastline suitable for restoration"""

    name: str
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float


class SiteSuitability(BaseModel):
    """Result of a restoration-site check"""

    valid: bool
    site: str
    distance_km: float = 0.0
    suitability: Suitability
    note: str | None = None


# ============================================================================
# Oracle Types
# ============================================================================


class ChangeDetection(BaseModel):
    """Change classification of the monitored area"""

    type: ChangeType
    confidence: float = Field(ge=0, le=1)
    area_changed_hectares: float = Field(default=0.0, ge=0)
    description: str = ""


class ImageryInfo(BaseModel):
    """Metadata of the imagery the assessment was derived from"""

    resolution: str = "10m"
    cloud_cover: float = Field(default=0.0, ge=0, le=100)
    acquisition_date: datetime | None = None


class Assessment(BaseModel):
    """Vegetation/impact assessment produced by a verification oracle"""

    latitude: float
    longitude: float
    vegetation_index: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)
    change_detection: ChangeDetection
    area_verified: float = Field(gt=0)
    nearest_site: str | None = None
    distance_km: float | None = None
    imagery: ImageryInfo = Field(default_factory=ImageryInfo)
    source: str = "BlueTrust Satellite Simulation"
    timestamp: datetime = Field(default_factory=utcnow)


class TimeSeriesPoint(BaseModel):
    """Monthly vegetation reading"""

    date: date
    vegetation_index: int
    confidence: float


# ============================================================================
# Project Types
# ============================================================================


class ProjectAttributes(BaseModel):
    """Caller-supplied attributes of a new project"""

    name: str
    location: Location
    area_hectares: float
    planted_units: int = 0
    description: str | None = None
    project_id: str | None = None


class ApprovalOverride(BaseModel):
    """Administrative approval with an explicit survival index"""

    survival_index: int = Field(ge=0, le=100)
    note: str | None = None


class RejectionOverride(BaseModel):
    """Administrative rejection"""

    reason: str = "rejected by verifier"


class Project(BaseModel):
    """Restoration project"""

    id: str
    issuer_id: str
    name: str
    description: str | None = None
    location: Location
    area_hectares: float
    planted_units: int
    status: ProjectStatus = ProjectStatus.REGISTERED
    status_history: list[ProjectStatus] = Field(default_factory=lambda: [ProjectStatus.REGISTERED])
    survival_index: int | None = None
    issued_credits: int = 0
    last_assessment: Assessment | None = None
    rejection_reason: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    verified_at: datetime | None = None
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================================
# Account Types
# ============================================================================


class IssuerAccount(BaseModel):
    """Restoration organization that registers projects and receives credits"""

    id: str
    name: str
    region: str | None = None
    registration_number: str | None = None
    rating: float = Field(default=0.0, ge=0, le=5)
    total_minted: int = 0
    total_sold: int = 0
    available: int = 0
    unit_price: int
    created_at: datetime = Field(default_factory=utcnow)


class HolderAccount(BaseModel):
    """Company that purchases and retires credits"""

    id: str
    name: str
    held: int = 0
    retired: int = 0
    purchased: int = 0
    target_offset: int = Field(default=0, ge=0, description="Offset goal, reporting only")
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def offset_percentage(self) -> float:
        """Share of the offset target covered by held plus retired credits"""
        if self.target_offset <= 0:
            return 0.0
        return (self.held + self.retired) / self.target_offset * 100


# ============================================================================
# Ledger Types
# ============================================================================


class LedgerEntry(BaseModel):
    """Single mint, transfer or retirement event"""

    sequence: int
    kind: EntryKind
    amount: int = Field(gt=0)
    source: str | None = None  # None for mint
    destination: str | None = None  # None for retire
    reference: str | None = None
    reason: str | None = None
    unit_price: int | None = None
    total_cost: int | None = None
    anchor_ref: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class LedgerReceipt(BaseModel):
    """Outcome of a committed ledger operation"""

    entry: LedgerEntry
    anchor_error: str | None = None


class PurchaseReceipt(BaseModel):
    """Outcome of a settled marketplace purchase"""

    holder_id: str
    issuer_id: str
    quantity: int
    unit_price: int
    total_cost: int
    issuer_available: int
    holder_held: int
    entry: LedgerEntry
    anchor_error: str | None = None


class Listing(BaseModel):
    """Marketplace listing of an issuer's available credits"""

    issuer_id: str
    name: str
    available: int
    unit_price: int
    rating: float


class SupplySnapshot(BaseModel):
    """Ledger totals"""

    minted: int
    retired: int
    circulating: int
    issuer_available: int
    holder_held: int


class RegistryStats(BaseModel):
    """Registry-wide statistics"""

    total_projects: int
    pending_projects: int
    verified_projects: int
    rejected_projects: int
    total_area_hectares: float
    verified_area_hectares: float
    credits_minted: int
    credits_retired: int
    credits_circulating: int

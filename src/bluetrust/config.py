"""
Engine Configuration

Settings for the verification-and-ledger engine. Values load from
environment variables prefixed with BLUETRUST_ (or a .env file), so the same
engine runs with simulated evidence in development and a real evidence
source in production.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bluetrust.enums import AnchorBackend, ChangeType, OracleBackend, SiteTrend
from bluetrust.types import CoastalRegion, ReferenceSite


class EngineSettings(BaseSettings):
    """Verification, pricing and oracle settings"""

    # ============================================================================
    # Credit issuance
    # ============================================================================

    credits_per_hectare: int = Field(default=10, gt=0, description="Credits per hectare at 100% survival")
    verification_confidence_threshold: float = Field(default=0.5, ge=0, le=1)

    # ============================================================================
    # Marketplace pricing (INR per credit)
    # ============================================================================

    min_unit_price: int = Field(default=1000, gt=0)
    max_unit_price: int = Field(default=10000, gt=0)
    default_unit_price: int = Field(default=2500, gt=0)

    # ============================================================================
    # Verification oracle
    # ============================================================================

    oracle_backend: OracleBackend = OracleBackend.SIMULATED
    oracle_url: str | None = None
    oracle_timeout_seconds: float = Field(default=30.0, gt=0)
    oracle_latency_seconds: float = Field(default=0.0, ge=0)
    oracle_seed: int | None = None  # None: non-deterministic entropy
    oracle_match_tolerance_km: float = Field(default=500.0, gt=0)
    index_floor: int = Field(default=50, ge=0, le=100)
    index_ceiling: int = Field(default=95, ge=0, le=100)
    change_distribution: dict[ChangeType, float] = Field(
        default_factory=lambda: {
            ChangeType.RESTORATION: 0.4,
            ChangeType.DEFORESTATION: 0.1,
            ChangeType.NO_CHANGE: 0.3,
            ChangeType.SEASONAL_VARIATION: 0.2,
        }
    )

    # ============================================================================
    # Ledger anchoring
    # ============================================================================

    anchor_backend: AnchorBackend = AnchorBackend.NONE
    anchor_url: str | None = None
    anchor_timeout_seconds: float = Field(default=10.0, gt=0)
    anchor_failure_history: int = Field(default=1000, gt=0, description="Anchor failures kept for inspection")

    model_config = SettingsConfigDict(
        env_prefix="BLUETRUST_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @model_validator(mode="after")
    def check_ranges(self) -> "EngineSettings":
        if self.min_unit_price > self.max_unit_price:
            raise ValueError("min_unit_price must not exceed max_unit_price")
        if not self.min_unit_price <= self.default_unit_price <= self.max_unit_price:
            raise ValueError("default_unit_price must lie within the price range")
        if self.index_floor > self.index_ceiling:
            raise ValueError("index_floor must not exceed index_ceiling")
        if any(weight < 0 for weight in self.change_distribution.values()):
            raise ValueError("change_distribution weights must not be negative")
        if not self.change_distribution or sum(self.change_distribution.values()) <= 0:
            raise ValueError("change_distribution needs at least one positive weight")
        if self.oracle_backend == OracleBackend.HTTP and not self.oracle_url:
            raise ValueError("oracle_url is required for the http oracle backend")
        if self.anchor_backend == AnchorBackend.HTTP and not self.anchor_url:
            raise ValueError("anchor_url is required for the http anchor backend")
        return self


# ============================================================================
# Reference data
# ============================================================================

# Baseline readings for mangrove sites along the Indian coastline
DEFAULT_REFERENCE_SITES: list[ReferenceSite] = [
    ReferenceSite(
        name="Sundarbans, West Bengal",
        latitude=21.9497,
        longitude=88.9468,
        vegetation_index=85,
        trend=SiteTrend.INCREASING,
        radius_km=50,
    ),
    ReferenceSite(
        name="Bhitarkanika, Odisha",
        latitude=20.45,
        longitude=86.9,
        vegetation_index=78,
        trend=SiteTrend.STABLE,
        radius_km=30,
    ),
    ReferenceSite(
        name="Pichavaram, Tamil Nadu",
        latitude=11.45,
        longitude=79.7833,
        vegetation_index=82,
        trend=SiteTrend.INCREASING,
        radius_km=15,
    ),
    ReferenceSite(
        name="Kori Creek, Gujarat",
        latitude=23.0167,
        longitude=68.9667,
        vegetation_index=72,
        trend=SiteTrend.DECREASING,
        radius_km=20,
    ),
    ReferenceSite(
        name="Godavari Delta, Andhra Pradesh",
        latitude=16.25,
        longitude=81.75,
        vegetation_index=79,
        trend=SiteTrend.STABLE,
        radius_km=25,
    ),
]

DEFAULT_COASTAL_REGIONS: list[CoastalRegion] = [
    CoastalRegion(name="West coast", lat_min=8, lat_max=23, lng_min=68, lng_max=88),
    CoastalRegion(name="East coast", lat_min=8, lat_max=22, lng_min=80, lng_max=95),
]

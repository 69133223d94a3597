"""
Shared Enums

Single source of truth for enums used across domain models, API schemas,
and business logic.
"""

from enum import Enum


# ============================================================================
# Project Enums
# ============================================================================


class ProjectStatus(str, Enum):
    """
    Project lifecycle status

    Lifecycle:
    - REGISTERED: Created by the issuer, waiting for verification
    - UNDER_REVIEW: Verification requested, oracle assessment pending or received
    - VERIFIED: Impact verified and credits minted (terminal)
    - REJECTED: Rejected by an administrative decision (terminal)
    """

    REGISTERED = "registered"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"


# ============================================================================
# Evidence Enums
# ============================================================================


class SiteTrend(str, Enum):
    """Vegetation trend observed at a reference site"""

    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class ChangeType(str, Enum):
    """Change-detection classification of a monitored area"""

    RESTORATION = "restoration"
    DEFORESTATION = "deforestation"
    NO_CHANGE = "no_change"
    SEASONAL_VARIATION = "seasonal_variation"


class Suitability(str, Enum):
    """Restoration suitability of a location"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ============================================================================
# Ledger Enums
# ============================================================================


class EntryKind(str, Enum):
    """Ledger entry kinds"""

    MINT = "mint"
    TRANSFER = "transfer"
    RETIRE = "retire"


class AccountKind(str, Enum):
    """Account kinds, also used as lock namespaces"""

    ISSUER = "issuer"
    HOLDER = "holder"
    PROJECT = "project"


class OracleBackend(str, Enum):
    """Evidence source implementations"""

    SIMULATED = "simulated"
    HTTP = "http"


class AnchorBackend(str, Enum):
    """Ledger-anchoring implementations"""

    NONE = "none"
    MEMORY = "memory"
    HTTP = "http"

"""
BlueTrust verification-and-ledger engine

Tracks restoration projects, verifies their impact through a pluggable
oracle, mints carbon credits against verified impact, and settles credit
purchases and retirements.
"""

from bluetrust.config import EngineSettings
from bluetrust.engine import BlueTrustEngine
from bluetrust.errors import (
    AlreadyPending,
    BlueTrustError,
    InsufficientBalance,
    InvalidInput,
    InvalidQuantity,
    InvalidTransition,
    InvariantViolation,
    NotFound,
    OracleUnavailable,
)

__all__ = [
    "AlreadyPending",
    "BlueTrustEngine",
    "BlueTrustError",
    "EngineSettings",
    "InsufficientBalance",
    "InvalidInput",
    "InvalidQuantity",
    "InvalidTransition",
    "InvariantViolation",
    "NotFound",
    "OracleUnavailable",
]

"""
Pytest configuration for engine tests

Fixtures for the state machine, ledger and marketplace. Every engine is
built with explicit settings and a deterministic oracle.
"""

import pytest

from bluetrust.anchoring import InMemoryAnchor
from bluetrust.config import EngineSettings
from bluetrust.engine import BlueTrustEngine
from bluetrust.types import Location, ProjectAttributes
from tests.mocks import FixedOracle


SUNDARBANS = Location(latitude=21.9497, longitude=88.9468, name="Sundarbans, West Bengal")


@pytest.fixture
def settings():
    """Engine settings with a fixed oracle seed"""
    return EngineSettings(oracle_seed=7, oracle_timeout_seconds=1.0)


@pytest.fixture
def oracle():
    """Oracle reporting an 85% survival index"""
    return FixedOracle(vegetation_index=85)


@pytest.fixture
def anchor():
    return InMemoryAnchor()


@pytest.fixture
def engine(settings, oracle, anchor):
    """Engine with one issuer (NGO001) and one holder (CMP001)"""
    engine = BlueTrustEngine(settings, oracle=oracle, anchor=anchor)
    engine.register_issuer("NGO001", "Coastal Conservation Society", rating=4.8, region="West Bengal")
    engine.register_holder("CMP001", "Tata Steel Ltd", target_offset=100)
    return engine


@pytest.fixture
def ledger(engine):
    return engine.ledger


@pytest.fixture
def sundarbans_project():
    """Attributes of a 5.2 ha project at the Sundarbans reference site"""
    return ProjectAttributes(
        name="Sundarbans Mangrove Restoration",
        location=SUNDARBANS,
        area_hectares=5.2,
        planted_units=2500,
        description="Community-led mangrove planting",
    )

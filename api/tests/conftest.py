"""
Pytest configuration for API tests

Fixtures and configuration for FastAPI endpoint testing. Each test gets a
fresh engine with a mock oracle and anchor, installed as the application
engine.
"""

import pytest
from fastapi.testclient import TestClient

from api.config import settings
from api.dependencies.engine import get_engine, reset_engine
from api.main import app
from api.tests.factories import AccountFactory, ProjectFactory
from api.tests.mocks import MockAnchor, MockOracle
from bluetrust.config import EngineSettings
from bluetrust.engine import BlueTrustEngine


@pytest.fixture
def mock_oracle():
    return MockOracle()


@pytest.fixture
def mock_anchor():
    return MockAnchor()


@pytest.fixture
def engine(mock_oracle, mock_anchor):
    """Fresh engine for one test"""
    engine = BlueTrustEngine(EngineSettings(oracle_timeout_seconds=1.0), oracle=mock_oracle, anchor=mock_anchor)
    reset_engine(engine)
    app.dependency_overrides[get_engine] = lambda: engine
    yield engine
    app.dependency_overrides.clear()
    reset_engine()


@pytest.fixture
def client(engine):
    """Create FastAPI test client"""
    with TestClient(app) as test_client:
        yield test_client


# Auth fixtures
@pytest.fixture
def verifier_headers():
    """Headers for verifier-only endpoints"""
    return {"X-API-Key": settings.verifier_api_key}


# Account fixtures
@pytest.fixture
def issuer(client):
    """Registered issuer account"""
    response = client.post("/api/v1/issuers", json=AccountFactory.create_issuer_data("NGO001"))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def holder(client):
    """Registered holder account"""
    response = client.post("/api/v1/holders", json=AccountFactory.create_holder_data("CMP001"))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def project(client, issuer):
    """Registered 5.2 ha project at the Sundarbans"""
    response = client.post("/api/v1/projects", json=ProjectFactory.create_project_data(issuer["id"]))
    assert response.status_code == 201, response.text
    return response.json()["project"]


@pytest.fixture
def verified_project(client, project, verifier_headers):
    """Project verified at 85% survival (44 credits minted to NGO001)"""
    response = client.post(f"/api/v1/projects/{project['id']}/verify", headers=verifier_headers)
    assert response.status_code == 200, response.text
    return response.json()["project"]

"""
Tests for the project state machine

Registration, oracle-driven verification and administrative decisions,
including the one-mint-per-project guarantee.
"""

import asyncio

import pytest

from bluetrust.config import EngineSettings
from bluetrust.engine import BlueTrustEngine
from bluetrust.enums import EntryKind, ProjectStatus
from bluetrust.errors import AlreadyPending, InvalidInput, InvalidTransition, NotFound, OracleUnavailable
from bluetrust.projects import compute_credits
from bluetrust.types import ApprovalOverride, Location, RejectionOverride
from tests.mocks import BrokenOracle, FixedOracle, make_assessment


LIFECYCLE_PREFIXES = [
    [ProjectStatus.REGISTERED],
    [ProjectStatus.REGISTERED, ProjectStatus.UNDER_REVIEW],
    [ProjectStatus.REGISTERED, ProjectStatus.UNDER_REVIEW, ProjectStatus.VERIFIED],
    [ProjectStatus.REGISTERED, ProjectStatus.UNDER_REVIEW, ProjectStatus.REJECTED],
]


def mints(engine: BlueTrustEngine) -> list:
    return engine.entries(kind=EntryKind.MINT)


class TestComputeCredits:
    """floor(area * rate * index / 100)"""

    @pytest.mark.parametrize(
        "area,index,expected",
        [(5.2, 85, 44), (5.2, 100, 52), (3.0, 50, 15), (0.01, 50, 0), (1.15, 100, 11), (2.0, 0, 0)],
    )
    def test_values(self, area, index, expected):
        assert compute_credits(area, 10, index) == expected

    def test_rate(self):
        assert compute_credits(5.2, 20, 85) == 88


class TestRegistration:
    """Project registration"""

    def test_register(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)

        assert project.id.startswith("PRJ")
        assert project.status == ProjectStatus.REGISTERED
        assert project.status_history == [ProjectStatus.REGISTERED]
        assert project.issued_credits == 0
        assert engine.estimated_credits(project.id) == 52

    def test_explicit_id(self, engine, sundarbans_project):
        attributes = sundarbans_project.model_copy(update={"project_id": "PRJ001"})
        assert engine.register_project("NGO001", attributes).id == "PRJ001"

        with pytest.raises(InvalidInput):
            engine.register_project("NGO001", attributes)

    @pytest.mark.parametrize("area", [0, -1.0, float("inf")])
    def test_invalid_area(self, engine, sundarbans_project, area):
        with pytest.raises(InvalidInput):
            engine.register_project("NGO001", sundarbans_project.model_copy(update={"area_hectares": area}))

    def test_negative_planted_units(self, engine, sundarbans_project):
        with pytest.raises(InvalidInput):
            engine.register_project("NGO001", sundarbans_project.model_copy(update={"planted_units": -1}))

    def test_invalid_location(self, engine, sundarbans_project):
        attributes = sundarbans_project.model_copy(update={"location": Location(latitude=95, longitude=0)})
        with pytest.raises(InvalidInput):
            engine.register_project("NGO001", attributes)

    def test_unknown_issuer(self, engine, sundarbans_project):
        with pytest.raises(NotFound):
            engine.register_project("NGO999", sundarbans_project)
        assert engine.list_projects() == []

    def test_list_and_queue(self, engine, sundarbans_project):
        engine.register_issuer("NGO002", "Mangrove Trust")
        first = engine.register_project("NGO001", sundarbans_project)
        second = engine.register_project("NGO002", sundarbans_project)

        assert [p.id for p in engine.list_projects(issuer_id="NGO002")] == [second.id]
        assert [p.id for p in engine.list_projects(status=ProjectStatus.REGISTERED)] == [first.id, second.id]
        assert [p.id for p in engine.verification_queue()] == [first.id, second.id]


class TestVerification:
    """Oracle-driven verification"""

    @pytest.mark.asyncio
    async def test_verify_mints_credits(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)

        verified = await engine.verify(project.id)

        assert verified.status == ProjectStatus.VERIFIED
        assert verified.status_history == LIFECYCLE_PREFIXES[2]
        assert verified.survival_index == 85
        assert verified.issued_credits == 44
        assert verified.verified_at is not None
        assert verified.last_assessment.vegetation_index == 85
        assert engine.get_issuer("NGO001").available == 44
        assert [(e.amount, e.reference) for e in mints(engine)] == [(44, project.id)]
        assert engine.verification_queue() == []

    @pytest.mark.asyncio
    async def test_request_verification_stores_assessment(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)

        assessment = await engine.request_verification(project.id)

        stored = engine.get_project(project.id)
        assert stored.status == ProjectStatus.UNDER_REVIEW
        assert stored.last_assessment == assessment
        assert mints(engine) == []

    @pytest.mark.asyncio
    async def test_repeat_request_while_under_review(self, engine, oracle, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)

        await engine.request_verification(project.id)
        await engine.request_verification(project.id)

        assert len(oracle.calls) == 2
        assert engine.get_project(project.id).status_history == LIFECYCLE_PREFIXES[1]

    @pytest.mark.asyncio
    async def test_verified_project_cannot_be_verified_again(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.verify(project.id)

        with pytest.raises(InvalidTransition) as exc_info:
            await engine.request_verification(project.id)

        assert exc_info.value.context["status"] == "verified"
        assert len(mints(engine)) == 1

    @pytest.mark.asyncio
    async def test_unknown_project(self, engine):
        with pytest.raises(NotFound):
            await engine.request_verification("PRJ404")
        with pytest.raises(NotFound):
            await engine.decide("PRJ404", override=ApprovalOverride(survival_index=50))

    @pytest.mark.asyncio
    async def test_oracle_failure_keeps_project_under_review(self, settings, sundarbans_project):
        engine = BlueTrustEngine(settings, oracle=BrokenOracle())
        engine.register_issuer("NGO001", "Coastal Conservation Society")
        project = engine.register_project("NGO001", sundarbans_project)

        with pytest.raises(OracleUnavailable) as exc_info:
            await engine.request_verification(project.id)

        assert exc_info.value.context["project_id"] == project.id
        assert engine.get_project(project.id).status == ProjectStatus.UNDER_REVIEW
        assert not engine.projects.is_pending(project.id)

    @pytest.mark.asyncio
    async def test_oracle_timeout_then_retry(self, sundarbans_project):
        oracle = FixedOracle(vegetation_index=85)
        engine = BlueTrustEngine(EngineSettings(oracle_timeout_seconds=0.05), oracle=oracle)
        engine.register_issuer("NGO001", "Coastal Conservation Society")
        project = engine.register_project("NGO001", sundarbans_project)
        oracle.hold()

        with pytest.raises(OracleUnavailable):
            await engine.request_verification(project.id)

        assert engine.get_project(project.id).status == ProjectStatus.UNDER_REVIEW
        assert not engine.projects.is_pending(project.id)
        assert mints(engine) == []

        oracle.release = None
        verified = await engine.verify(project.id)
        assert verified.issued_credits == 44


@pytest.mark.concurrency
class TestConcurrentVerification:
    """In-flight verification requests"""

    @pytest.mark.asyncio
    async def test_duplicate_request_is_already_pending(self, engine, oracle, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        release = oracle.hold()

        first = asyncio.create_task(engine.request_verification(project.id))
        while not engine.projects.is_pending(project.id):
            await asyncio.sleep(0)

        with pytest.raises(AlreadyPending):
            await engine.request_verification(project.id)
        with pytest.raises(AlreadyPending):
            await engine.decide(project.id, override=ApprovalOverride(survival_index=85))

        release.set()
        assessment = await first

        assert assessment.vegetation_index == 85
        assert len(oracle.calls) == 1
        assert not engine.projects.is_pending(project.id)

    @pytest.mark.asyncio
    async def test_concurrent_decisions_mint_once(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        assessment = await engine.request_verification(project.id)

        results = await asyncio.gather(
            engine.decide(project.id, assessment=assessment),
            engine.decide(project.id, assessment=assessment),
            engine.reject(project.id, "duplicate site"),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert all(isinstance(f, InvalidTransition) for f in failures)
        assert len(mints(engine)) == 1
        assert engine.get_project(project.id).status_history == LIFECYCLE_PREFIXES[2]


class TestDecisions:
    """Administrative approvals and rejections"""

    @pytest.mark.asyncio
    async def test_decide_requires_under_review(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)

        with pytest.raises(InvalidTransition):
            await engine.decide(project.id, assessment=make_assessment())
        with pytest.raises(InvalidTransition):
            await engine.reject(project.id)

        assert engine.get_project(project.id).status == ProjectStatus.REGISTERED

    @pytest.mark.asyncio
    async def test_decide_needs_exactly_one_source(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.request_verification(project.id)

        with pytest.raises(InvalidInput):
            await engine.decide(project.id)
        with pytest.raises(InvalidInput):
            await engine.decide(project.id, make_assessment(), ApprovalOverride(survival_index=80))

    @pytest.mark.asyncio
    async def test_second_decision_fails_without_second_mint(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.verify(project.id)

        with pytest.raises(InvalidTransition):
            await engine.decide(project.id, assessment=make_assessment())
        with pytest.raises(InvalidTransition):
            await engine.reject(project.id)

        assert engine.get_issuer("NGO001").total_minted == 44
        assert len(mints(engine)) == 1

    @pytest.mark.asyncio
    async def test_reject(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.request_verification(project.id)

        rejected = await engine.decide(project.id, override=RejectionOverride(reason="Survey mismatch"))

        assert rejected.status == ProjectStatus.REJECTED
        assert rejected.status_history == LIFECYCLE_PREFIXES[3]
        assert rejected.rejection_reason == "Survey mismatch"
        assert rejected.issued_credits == 0
        assert mints(engine) == []

        with pytest.raises(InvalidTransition):
            await engine.request_verification(project.id)

    @pytest.mark.asyncio
    async def test_approval_override(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.request_verification(project.id)

        verified = await engine.decide(project.id, override=ApprovalOverride(survival_index=50))

        assert verified.survival_index == 50
        assert verified.issued_credits == 26
        assert engine.get_issuer("NGO001").available == 26

    @pytest.mark.asyncio
    async def test_low_confidence_assessment_rejected(self, engine, sundarbans_project):
        project = engine.register_project("NGO001", sundarbans_project)
        await engine.request_verification(project.id)

        with pytest.raises(InvalidInput) as exc_info:
            await engine.decide(project.id, assessment=make_assessment(confidence=0.3))

        assert exc_info.value.context["threshold"] == 0.5
        assert engine.get_project(project.id).status == ProjectStatus.UNDER_REVIEW
        assert mints(engine) == []

    @pytest.mark.asyncio
    async def test_zero_credits_verifies_without_mint(self, engine, sundarbans_project):
        attributes = sundarbans_project.model_copy(update={"area_hectares": 0.01})
        project = engine.register_project("NGO001", attributes)
        await engine.request_verification(project.id)

        verified = await engine.decide(project.id, override=ApprovalOverride(survival_index=50))

        assert verified.status == ProjectStatus.VERIFIED
        assert verified.issued_credits == 0
        assert mints(engine) == []


@pytest.mark.asyncio
async def test_observed_statuses_follow_lifecycle(engine, sundarbans_project):
    project = engine.register_project("NGO001", sundarbans_project)
    observed = [engine.get_project(project.id).status]

    await engine.request_verification(project.id)
    observed.append(engine.get_project(project.id).status)
    await engine.decide(project.id, override=ApprovalOverride(survival_index=90))
    observed.append(engine.get_project(project.id).status)

    assert observed in LIFECYCLE_PREFIXES
    assert engine.get_project(project.id).status_history == observed

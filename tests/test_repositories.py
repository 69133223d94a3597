"""
Tests for the keyed repositories and their secondary indices
"""

import pytest

from bluetrust.enums import ProjectStatus
from bluetrust.types import ApprovalOverride


class NoScanDict(dict):
    """Record store that fails any full iteration"""

    def values(self):
        raise AssertionError("full scan of records")

    def __iter__(self):
        raise AssertionError("full scan of records")


@pytest.fixture
def repository(engine, sundarbans_project):
    engine.register_issuer("NGO002", "Mangrove Trust")
    engine.register_issuer("NGO003", "Delta Restoration Fund")
    for issuer_id in ("NGO001", "NGO002", "NGO001"):
        engine.register_project(issuer_id, sundarbans_project)
    return engine.projects.projects


def use_no_scan_store(repository):
    repository._records = NoScanDict(repository._records)


class TestProjectIndices:
    """Issuer and status lookups"""

    def test_by_issuer_in_insertion_order(self, repository):
        expected = [p.id for p in repository.get_all() if p.issuer_id == "NGO001"]
        use_no_scan_store(repository)

        assert [p.id for p in repository.get_by_issuer("NGO001")] == expected
        assert len(repository.get_by_issuer("NGO002")) == 1

    def test_lookups_do_not_scan(self, repository):
        use_no_scan_store(repository)

        assert repository.get_by_issuer("NGO003") == []
        assert repository.get_by_issuer("NGO404") == []
        assert len(repository.get_by_status(ProjectStatus.REGISTERED)) == 3
        assert repository.get_by_status(ProjectStatus.VERIFIED) == []

    @pytest.mark.asyncio
    async def test_status_index_follows_transitions(self, engine, repository):
        first = repository.get_all()[0]

        await engine.request_verification(first.id)
        assert [p.id for p in repository.get_by_status(ProjectStatus.UNDER_REVIEW)] == [first.id]
        assert first.id not in [p.id for p in repository.get_by_status(ProjectStatus.REGISTERED)]

        await engine.decide(first.id, override=ApprovalOverride(survival_index=80))
        assert repository.get_by_status(ProjectStatus.UNDER_REVIEW) == []
        assert [p.id for p in repository.get_by_status(ProjectStatus.VERIFIED)] == [first.id]
        assert len(repository.get_by_issuer("NGO001")) == 2
        assert [p.id for p in engine.verification_queue()] == [p.id for p in repository.get_all()[1:]]

"""
Registry Statistics

Aggregate figures for the verifier dashboard: project counts per status,
restored area and credit supply.
"""

from bluetrust.enums import ProjectStatus
from bluetrust.ledger import CreditLedger
from bluetrust.projects import ProjectStateMachine
from bluetrust.types import RegistryStats


def registry_stats(machine: ProjectStateMachine, ledger: CreditLedger) -> RegistryStats:
    projects = machine.projects
    verified = projects.get_by_status(ProjectStatus.VERIFIED)
    supply = ledger.supply()

    return RegistryStats(
        total_projects=len(projects),
        pending_projects=len(machine.verification_queue()),
        verified_projects=len(verified),
        rejected_projects=len(projects.get_by_status(ProjectStatus.REJECTED)),
        total_area_hectares=round(sum(p.area_hectares for p in projects), 2),
        verified_area_hectares=round(sum(p.area_hectares for p in verified), 2),
        credits_minted=supply.minted,
        credits_retired=supply.retired,
        credits_circulating=supply.circulating,
    )

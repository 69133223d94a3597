"""
Project State Machine

Owns project status and the transitions triggered by registration, oracle
results and administrative decisions:

    registered -> under_review -> verified | rejected

Verified and rejected are terminal. A project that is verified has had its
credits minted exactly once; there is no path back into review.
"""

import asyncio
import logging
import math
import uuid
from decimal import ROUND_FLOOR, Decimal

from bluetrust.config import EngineSettings
from bluetrust.enums import AccountKind, ProjectStatus
from bluetrust.errors import AlreadyPending, InvalidInput, InvalidTransition, NotFound, OracleUnavailable
from bluetrust.geo import validate_coordinates
from bluetrust.ledger import CreditLedger
from bluetrust.locks import LockRegistry
from bluetrust.oracle import VerificationOracle
from bluetrust.repositories import ProjectRepository
from bluetrust.types import (
    ApprovalOverride,
    Assessment,
    Project,
    ProjectAttributes,
    RejectionOverride,
    utcnow,
)


logger = logging.getLogger(__name__)


def compute_credits(area_hectares: float, credits_per_hectare: int, survival_index: int) -> int:
    """
    Credits earned by a verified project

    floor(area * rate * survival / 100), computed in decimal so that
    5.2 ha at 85% gives 44 and not 43.
    """
    value = Decimal(str(area_hectares)) * credits_per_hectare * survival_index / 100
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class ProjectStateMachine:
    """Project registration, verification and decisions"""

    def __init__(
        self,
        ledger: CreditLedger,
        oracle: VerificationOracle,
        settings: EngineSettings | None = None,
        locks: LockRegistry | None = None,
    ):
        self.ledger = ledger
        self.oracle = oracle
        self.settings = settings if settings is not None else ledger.settings
        self.locks = locks if locks is not None else ledger.locks
        self.projects = ProjectRepository()
        self._pending: set[str] = set()

    # ============================================================================
    # Registration
    # ============================================================================

    def register(self, issuer_id: str, attributes: ProjectAttributes) -> Project:
        """
        Register a new project in the `registered` state

        Args:
            issuer_id: Issuing organization
            attributes: Name, location, claimed area and planted units

        Returns:
            The registered project

        Raises:
            InvalidInput: Non-positive area, negative planted units, bad coordinates,
                empty name or duplicate project id
            NotFound: Unknown issuer
        """
        if not attributes.name or not attributes.name.strip():
            raise InvalidInput("Project name must not be empty")
        area = attributes.area_hectares
        if not math.isfinite(area) or area <= 0:
            raise InvalidInput("Area must be greater than 0 hectares", area_hectares=area)
        if attributes.planted_units < 0:
            raise InvalidInput("Planted units must not be negative", planted_units=attributes.planted_units)
        validate_coordinates(attributes.location.latitude, attributes.location.longitude)
        self.ledger.get_issuer(issuer_id)

        project_id = attributes.project_id or f"PRJ{uuid.uuid4().hex[:12].upper()}"
        if self.projects.exists(project_id):
            raise InvalidInput(f"Project {project_id} already exists", project_id=project_id)

        project = Project(
            id=project_id,
            issuer_id=issuer_id,
            name=attributes.name,
            description=attributes.description,
            location=attributes.location,
            area_hectares=area,
            planted_units=attributes.planted_units,
        )
        self.projects.create(project)
        logger.info(f"Project {project_id} registered by {issuer_id} ({area} ha)")
        return project

    # ============================================================================
    # Verification
    # ============================================================================

    async def request_verification(self, project_id: str) -> Assessment:
        """
        Move a project into review and obtain an oracle assessment.

        The oracle is called without holding any lock. On timeout or oracle
        failure the project stays `under_review` and the request may be
        repeated.

        Returns:
            The oracle assessment (also stored as project.last_assessment)

        Raises:
            NotFound: Unknown project
            AlreadyPending: An oracle call for this project is in flight
            InvalidTransition: Project is verified or rejected
            OracleUnavailable: Oracle failed or timed out
        """
        self.get(project_id)
        async with self.locks.hold((AccountKind.PROJECT, project_id)):
            project = self.get(project_id)
            if project_id in self._pending:
                raise AlreadyPending(
                    f"Verification of project {project_id} is already in progress", project_id=project_id
                )
            if project.status == ProjectStatus.REGISTERED:
                project = self._transition(project, ProjectStatus.UNDER_REVIEW)
            elif project.status != ProjectStatus.UNDER_REVIEW:
                raise InvalidTransition(
                    f"Project {project_id} is {project.status.value} and cannot be verified again",
                    project_id=project_id,
                    status=project.status.value,
                )
            self._pending.add(project_id)

        try:
            assessment = await asyncio.wait_for(
                self.oracle.assess(
                    project.location.latitude, project.location.longitude, project.area_hectares
                ),
                timeout=self.settings.oracle_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Oracle timed out for project {project_id}; project stays under review")
            raise OracleUnavailable(
                f"Oracle did not answer within {self.settings.oracle_timeout_seconds}s",
                project_id=project_id,
                status=ProjectStatus.UNDER_REVIEW.value,
            ) from None
        except OracleUnavailable as e:
            logger.warning(f"Oracle failed for project {project_id}: {e.message}")
            e.context.setdefault("project_id", project_id)
            raise
        finally:
            self._pending.discard(project_id)

        async with self.locks.hold((AccountKind.PROJECT, project_id)):
            current = self.get(project_id)
            if current.status == ProjectStatus.UNDER_REVIEW:
                self.projects.update(current.model_copy(update={"last_assessment": assessment, "updated_at": utcnow()}))

        logger.info(
            f"Project {project_id} assessed: index={assessment.vegetation_index} "
            f"confidence={assessment.confidence:.2f}"
        )
        return assessment

    async def decide(
        self,
        project_id: str,
        assessment: Assessment | None = None,
        override: ApprovalOverride | RejectionOverride | None = None,
    ) -> Project:
        """
        Apply a verification decision to a project under review.

        A qualifying assessment (confidence at or above the configured
        threshold) or an approval override verifies the project and mints
        its credits in the same step. A rejection override rejects it with
        no ledger effect.

        Args:
            project_id: Project under review
            assessment: Oracle assessment
            override: Administrative approval or rejection

        Returns:
            The project in its terminal state

        Raises:
            NotFound: Unknown project
            InvalidInput: Neither or both of assessment/override given, or the
                assessment confidence is below the threshold
            AlreadyPending: An oracle call for this project is in flight
            InvalidTransition: Project is not under review
        """
        if (assessment is None) == (override is None):
            raise InvalidInput("Provide exactly one of assessment or override", project_id=project_id)
        issuer_id = self.get(project_id).issuer_id

        async with self.locks.hold((AccountKind.PROJECT, project_id), (AccountKind.ISSUER, issuer_id)):
            project = self.get(project_id)
            if project_id in self._pending:
                raise AlreadyPending(
                    f"Verification of project {project_id} is still in progress", project_id=project_id
                )
            if project.status != ProjectStatus.UNDER_REVIEW:
                raise InvalidTransition(
                    f"Project {project_id} is {project.status.value}, decisions require under_review",
                    project_id=project_id,
                    status=project.status.value,
                )

            if isinstance(override, RejectionOverride):
                rejected = self._transition(project, ProjectStatus.REJECTED, rejection_reason=override.reason)
                logger.info(f"Project {project_id} rejected: {override.reason}")
                return rejected

            if assessment is not None:
                threshold = self.settings.verification_confidence_threshold
                if assessment.confidence < threshold:
                    raise InvalidInput(
                        f"Assessment confidence {assessment.confidence:.2f} is below {threshold:.2f}",
                        project_id=project_id,
                        confidence=assessment.confidence,
                        threshold=threshold,
                    )
                survival_index = assessment.vegetation_index
            else:
                survival_index = override.survival_index

            credits = compute_credits(project.area_hectares, self.settings.credits_per_hectare, survival_index)
            entry = self.ledger.apply_mint(issuer_id, credits, reference=project_id) if credits > 0 else None
            now = utcnow()
            verified = self._transition(
                project,
                ProjectStatus.VERIFIED,
                survival_index=survival_index,
                issued_credits=credits,
                verified_at=now,
                last_assessment=assessment or project.last_assessment,
            )

        logger.info(f"Project {project_id} verified: survival={survival_index}% credits={credits}")
        if entry is not None:
            await self.ledger.publish(entry)
        return verified

    async def reject(self, project_id: str, reason: str = "rejected by verifier") -> Project:
        """Reject a project under review"""
        return await self.decide(project_id, override=RejectionOverride(reason=reason))

    async def verify(self, project_id: str) -> Project:
        """Request an assessment and decide on it in one call"""
        assessment = await self.request_verification(project_id)
        return await self.decide(project_id, assessment=assessment)

    def _transition(self, project: Project, status: ProjectStatus, **changes) -> Project:
        updated = project.model_copy(
            update={
                "status": status,
                "status_history": [*project.status_history, status],
                "updated_at": utcnow(),
                **changes,
            }
        )
        self.projects.update(updated)
        return updated

    # ============================================================================
    # Reads
    # ============================================================================

    def get(self, project_id: str) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFound(f"Project {project_id} not found", project_id=project_id)
        return project

    def list_projects(self, issuer_id: str | None = None, status: ProjectStatus | None = None) -> list[Project]:
        """
        List projects, optionally filtered by issuer and/or status

        Uses the issuer and status indices rather than scanning all projects.
        """
        if issuer_id is not None:
            projects = self.projects.get_by_issuer(issuer_id)
            return [p for p in projects if status is None or p.status == status]
        if status is not None:
            return self.projects.get_by_status(status)
        return self.projects.get_all()

    def verification_queue(self) -> list[Project]:
        """Projects awaiting a decision, oldest first"""
        return self.projects.get_by_status(ProjectStatus.REGISTERED, ProjectStatus.UNDER_REVIEW)

    def is_pending(self, project_id: str) -> bool:
        return project_id in self._pending

    def estimated_credits(self, project_id: str) -> int:
        """Upper bound on a project's credits (100% survival)"""
        project = self.get(project_id)
        return compute_credits(project.area_hectares, self.settings.credits_per_hectare, 100)

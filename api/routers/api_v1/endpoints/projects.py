"""
Project Endpoints

FastAPI endpoints for the project lifecycle:
registration, satellite verification and verifier decisions.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from api.dependencies.engine import get_engine
from api.schemas.project import (
    DecideRequest,
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    RejectRequest,
    VerificationResponse,
)
from api.utils.errors import to_http_exception
from api.utils.security import require_verifier
from bluetrust.engine import BlueTrustEngine
from bluetrust.enums import ProjectStatus
from bluetrust.errors import BlueTrustError, InvalidInput
from bluetrust.types import ApprovalOverride, Project, SiteSuitability, TimeSeriesPoint


router = APIRouter()


@router.post("", response_model=ProjectResponse, status_code=201, summary="Register project")
async def register_project(
    request: ProjectCreateRequest,
    engine: BlueTrustEngine = Depends(get_engine),
) -> ProjectResponse:
    """
    Register a restoration project in the `registered` state.

    The project is created on behalf of `issuer_id`; it earns no credits
    until a verifier approves it.
    """
    try:
        project = engine.register_project(request.issuer_id, request.to_attributes())
        return ProjectResponse(project=project, estimated_credits=engine.estimated_credits(project.id))
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.get("", response_model=ProjectListResponse, summary="List projects")
async def list_projects(
    issuer_id: str | None = Query(None, description="Filter by issuer"),
    status: ProjectStatus | None = Query(None, description="Filter by status"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> ProjectListResponse:
    projects = engine.list_projects(issuer_id=issuer_id, status=status)
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get("/queue", response_model=ProjectListResponse, summary="Verification queue")
async def verification_queue(engine: BlueTrustEngine = Depends(get_engine)) -> ProjectListResponse:
    """Projects that are registered or under review, oldest first"""
    projects = engine.verification_queue()
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get project")
async def get_project(
    project_id: str = Path(description="Project id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> ProjectResponse:
    try:
        project = engine.get_project(project_id)
        return ProjectResponse(project=project, estimated_credits=engine.estimated_credits(project_id))
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.get("/{project_id}/suitability", response_model=SiteSuitability, summary="Site suitability")
async def site_suitability(
    project_id: str = Path(description="Project id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> SiteSuitability:
    """Check the project location against known restoration sites and coastlines"""
    try:
        return engine.site_suitability(project_id)
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.get("/{project_id}/time-series", response_model=list[TimeSeriesPoint], summary="Vegetation time series")
async def time_series(
    project_id: str = Path(description="Project id"),
    months: int = Query(default=12, ge=1, le=60, description="Number of monthly readings"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> list[TimeSeriesPoint]:
    try:
        return engine.time_series(project_id, months, date.today())
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.post(
    "/{project_id}/verify",
    response_model=VerificationResponse,
    summary="Request satellite verification",
    dependencies=[Depends(require_verifier)],
)
async def verify_project(
    project_id: str = Path(description="Project id"),
    auto_decide: bool = Query(default=True, description="Apply a decision to the assessment right away"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> VerificationResponse:
    """
    Move the project under review and obtain an oracle assessment.

    With `auto_decide` (default) a qualifying assessment verifies the
    project and mints its credits. Otherwise the assessment is stored and the
    verifier decides through POST /projects/{id}/decide.

    **Errors:**
    - 409 if the project is already decided or a verification is in progress
    - 503 if the oracle fails or times out (the project stays under review)
    """
    try:
        assessment = await engine.request_verification(project_id)
        if auto_decide:
            project = await engine.decide(project_id, assessment=assessment)
        else:
            project = engine.get_project(project_id)
        return VerificationResponse(project=project, assessment=assessment, decided=auto_decide)
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.post(
    "/{project_id}/decide",
    response_model=Project,
    summary="Approve project",
    dependencies=[Depends(require_verifier)],
)
async def decide_project(
    request: DecideRequest,
    project_id: str = Path(description="Project id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> Project:
    """
    Approve a project under review and mint its credits.

    Provide exactly one of `assessment`, `use_last_assessment` or
    `survival_index`.
    """
    sources = [request.assessment is not None, request.use_last_assessment, request.survival_index is not None]
    if sum(sources) != 1:
        raise HTTPException(
            status_code=422,
            detail={
                "error": InvalidInput.code,
                "message": "Provide exactly one of assessment, use_last_assessment or survival_index",
            },
        )

    try:
        if request.survival_index is not None:
            override = ApprovalOverride(survival_index=request.survival_index, note=request.note)
            return await engine.decide(project_id, override=override)

        assessment = request.assessment
        if request.use_last_assessment:
            assessment = engine.get_project(project_id).last_assessment
            if assessment is None:
                raise InvalidInput(f"Project {project_id} has no recorded assessment", project_id=project_id)
        return await engine.decide(project_id, assessment=assessment)
    except BlueTrustError as e:
        raise to_http_exception(e)


@router.post(
    "/{project_id}/reject",
    response_model=Project,
    summary="Reject project",
    dependencies=[Depends(require_verifier)],
)
async def reject_project(
    request: RejectRequest,
    project_id: str = Path(description="Project id"),
    engine: BlueTrustEngine = Depends(get_engine),
) -> Project:
    try:
        return await engine.reject(project_id, request.reason)
    except BlueTrustError as e:
        raise to_http_exception(e)

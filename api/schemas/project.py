"""
Project Schemas

Pydantic models for project-related API requests and responses.
Range checks (area, coordinates, planted units) are left to the engine so
that every rejection carries the engine's error body.
"""

from pydantic import BaseModel, Field

from bluetrust.types import Assessment, Location, Project, ProjectAttributes


# ============================================================================
# Registration Schemas
# ============================================================================


class ProjectCreateRequest(BaseModel):
    """Request to register a restoration project"""

    issuer_id: str = Field(description="Issuing organization account id")
    name: str = Field(description="Project name")
    description: str | None = Field(None, description="Free-text description")
    latitude: float = Field(description="Latitude in degrees [-90, 90]")
    longitude: float = Field(description="Longitude in degrees [-180, 180]")
    location_name: str = Field(default="", description="Human-readable location")
    area_hectares: float = Field(description="Claimed area in hectares (> 0)")
    planted_units: int = Field(default=0, description="Claimed number of planted seedlings")
    project_id: str | None = Field(None, description="Explicit project id (generated when omitted)")

    def to_attributes(self) -> ProjectAttributes:
        return ProjectAttributes(
            name=self.name,
            description=self.description,
            location=Location(latitude=self.latitude, longitude=self.longitude, name=self.location_name),
            area_hectares=self.area_hectares,
            planted_units=self.planted_units,
            project_id=self.project_id,
        )


class ProjectResponse(BaseModel):
    """Project with its expected credit ceiling"""

    project: Project
    estimated_credits: int = Field(description="Credits at 100% survival")


class ProjectListResponse(BaseModel):
    """List of projects"""

    projects: list[Project]
    total: int


# ============================================================================
# Verification Schemas
# ============================================================================


class VerificationResponse(BaseModel):
    """Result of a verification request"""

    project: Project
    assessment: Assessment
    decided: bool = Field(description="Whether a decision was applied to the assessment")


class DecideRequest(BaseModel):
    """
    Verifier decision on a project under review

    Exactly one source of evidence: an explicit assessment, the project's
    last recorded assessment, or a survival index set by the verifier.
    """

    assessment: Assessment | None = Field(None, description="Assessment to decide on")
    use_last_assessment: bool = Field(default=False, description="Decide on the last recorded assessment")
    survival_index: int | None = Field(None, ge=0, le=100, description="Verifier-set survival index")
    note: str | None = Field(None, description="Verifier note")


class RejectRequest(BaseModel):
    """Verifier rejection"""

    reason: str = Field(default="rejected by verifier", min_length=1, description="Reason for rejection")

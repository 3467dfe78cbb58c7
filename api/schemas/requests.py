"""Request schemas for the API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Underwriting
# =============================================================================

class VehicleInput(BaseModel):
    """Vehicle facts for rating."""
    registration: str = Field(..., description="Registration number, e.g., 'MH-02-AB-1234'")
    make: str
    model: str
    manufacture_date: date = Field(..., description="Date of manufacture (ISO format)")
    engine_cc: int = Field(..., gt=0, description="Engine capacity in cc")
    idv: Decimal = Field(..., description="Insured Declared Value")


class ViolationInput(BaseModel):
    """One traffic violation, supplied inline instead of from the store."""
    violation_id: str
    violation_type: str = Field(..., description="e.g., 'speeding', 'red_light'")
    violation_date: date
    severity: Literal["minor", "moderate", "severe"]
    location: str = ""


class PremiumRequest(BaseModel):
    """Request for a premium quote."""
    application_id: str
    applicant_id: str
    vehicle: VehicleInput
    coverage_type: str = Field(..., description="comprehensive|own_damage|third_party")
    add_ons: list[str] = Field(default=[], description="Add-on covers, e.g., 'zero_depreciation'")
    as_of: Optional[datetime] = Field(
        default=None,
        description="Business timestamp of the request; defaults to now (UTC)",
    )
    violations: Optional[list[ViolationInput]] = Field(
        default=None,
        description="Inline violation history; when omitted the violation store is used",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "application_id": "APP-1001",
                    "applicant_id": "DRV-42",
                    "vehicle": {
                        "registration": "MH-02-AB-1234",
                        "make": "Maruti",
                        "model": "Swift",
                        "manufacture_date": "2021-03-01",
                        "engine_cc": 1197,
                        "idv": "550000",
                    },
                    "coverage_type": "comprehensive",
                    "add_ons": ["zero_depreciation"],
                    "as_of": "2024-07-01T10:00:00Z",
                }
            ]
        }
    }


# =============================================================================
# Claims
# =============================================================================

class PolicyInput(BaseModel):
    """Policy terms, registered with the claim store on first use."""
    policy_id: str
    coverage_type: str = Field(..., description="comprehensive|own_damage|third_party")
    idv: Decimal
    deductible: Decimal
    total_claim_limit: Decimal
    annual_claim_limit: Decimal
    per_part_limit: Optional[Decimal] = None
    active_add_ons: list[str] = []
    vehicle_registration_date: date
    document_id: str = "policy-wording"


class DetectedPartInput(BaseModel):
    """A damaged part from the vision report."""
    name: str = Field(..., description="Part name, e.g., 'front_bumper'")
    category: Literal["metal", "body", "glass", "plastic", "rubber", "battery"]
    severity: Literal["minor", "moderate", "severe"]
    estimated_cost: Decimal = Decimal("0")
    confidence: Decimal = Field(..., description="Detection confidence, 0-100")
    photo_ref: str = ""


class DamageReportInput(BaseModel):
    """Damage report from the vision collaborator."""
    report_id: str
    parts: list[DetectedPartInput]
    overall_confidence: Decimal = Field(..., description="0-100")
    manual_review_flag: bool = False


class GeoPointInput(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class PhotoInput(BaseModel):
    """Signals extracted from one claim photo."""
    photo_id: str
    taken_at: Optional[datetime] = None
    gps: Optional[GeoPointInput] = None
    image_hash: str = ""
    device_id: str = ""
    manipulation_detected: bool = False


class MetadataInput(BaseModel):
    """Claim-level fraud signals."""
    incident_at: datetime
    reported_at: datetime
    claimed_amount: Decimal
    incident_location: Optional[GeoPointInput] = None
    garage_id: Optional[str] = None
    photos: list[PhotoInput] = []


class HistoryInput(BaseModel):
    """Claimant's historical claim pattern."""
    claims_last_12_months: int = Field(default=0, ge=0)
    garage_claim_counts: dict[str, int] = {}
    flagged_garages: list[str] = []
    shared_device_ids: list[str] = []


class ClaimDecisionRequest(BaseModel):
    """Request to decide a claim."""
    claim_id: str
    policy_id: str
    claimant_id: str
    damage_report: DamageReportInput
    metadata: MetadataInput
    history: HistoryInput = Field(default_factory=HistoryInput)
    submitted_at: Optional[datetime] = None
    policy: Optional[PolicyInput] = Field(
        default=None,
        description="Policy terms; registered when the store does not know the policy yet",
    )


class ReviewRequest(BaseModel):
    """Human resolution of a claim in requires_manual_review."""
    reviewer_id: str
    confirm_valuation: bool = True
    notes: str = ""

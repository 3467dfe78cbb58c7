"""
MotorPilot Claim Models

Inputs, intermediate results and outputs of the claims path:
DamageValuator -> LimitEnforcer (concurrently with FraudScorer) ->
DecisionAssembler.

Key components:
- Policy / PolicySnapshot: read-only policy limits and annual-claims total
- DamageReport / DetectedPart: opaque input from the vision collaborator
- PartAmount / Valuation: per-part depreciated costs
- LimitEvent / LimitOutcome: per-part, aggregate and annual caps applied
- ClaimMetadata / ClaimantHistory / FraudAnalysis: fraud signals and score
- ClaimDecision: final, explainable, bounded decision

All monetary values use Decimal. All records are immutable; stages return
new records instead of mutating their inputs.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..exceptions import ValidationError
from ..money import ZERO, total
from .citation import Citation, Explanation
from .enums import (
    AddOn,
    ClaimState,
    ClaimStatus,
    ClauseKey,
    CoverageType,
    DenialReason,
    FraudIndicatorType,
    FraudRecommendation,
    IndicatorSeverity,
    PartCategory,
    PayoutStatus,
    Severity,
    TariffSource,
)


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class Policy:
    """
    Motor policy as read from the policy store. Read-only to the engine.

    Attributes:
        policy_id: Policy number
        coverage_type: comprehensive / own_damage / third_party
        idv: Insured Declared Value (> 0)
        deductible: Compulsory + voluntary deductible (>= 0)
        total_claim_limit: Maximum payable for one claim (> 0)
        annual_claim_limit: Maximum payable per policy year (> 0)
        per_part_limit: Optional cap per part
        active_add_ons: Add-on covers bought with the policy
        vehicle_registration_date: Anchor for the vehicle's age
        document_id: Policy wording document cited by default
    """
    policy_id: str
    coverage_type: CoverageType
    idv: Decimal
    deductible: Decimal
    total_claim_limit: Decimal
    annual_claim_limit: Decimal
    per_part_limit: Optional[Decimal] = None
    active_add_ons: frozenset[AddOn] = frozenset()
    vehicle_registration_date: Optional[date] = None
    document_id: str = "policy-wording"

    def has_add_on(self, add_on: AddOn) -> bool:
        return add_on in self.active_add_ons

    def validate(self, claim_id: Optional[str] = None, stage: str = "limit_enforcer") -> None:
        """
        Check the policy limits are in range.

        Raises:
            ValidationError: naming the first offending field
        """
        checks = [
            ("idv", self.idv > 0, "must be positive"),
            ("deductible", self.deductible >= 0, "must not be negative"),
            ("total_claim_limit", self.total_claim_limit > 0, "must be positive"),
            ("annual_claim_limit", self.annual_claim_limit > 0, "must be positive"),
            (
                "per_part_limit",
                self.per_part_limit is None or self.per_part_limit > 0,
                "must be positive when set",
            ),
        ]
        for field_name, ok, problem in checks:
            if not ok:
                raise ValidationError(
                    message=f"Policy {field_name} {problem}",
                    details={"field": field_name, "policy_id": self.policy_id},
                    claim_id=claim_id,
                    stage=stage,
                )


@dataclass(frozen=True)
class PolicySnapshot:
    """
    Policy plus claims already paid this policy year, read at decision time.

    ``version`` changes whenever the annual total changes; commits compare
    it to detect a race with another claim on the same policy.
    """
    policy: Policy
    annual_paid: Decimal
    version: int = 0

    @property
    def annual_remaining(self) -> Decimal:
        return max(ZERO, self.policy.annual_claim_limit - self.annual_paid)


# =============================================================================
# Damage Report (external input)
# =============================================================================

@dataclass(frozen=True)
class DetectedPart:
    """A damaged part detected by the vision collaborator."""
    name: str
    category: PartCategory
    severity: Severity
    estimated_cost: Decimal
    confidence: Decimal
    photo_ref: str = ""


@dataclass(frozen=True)
class DamageReport:
    """
    Damage report supplied by the vision collaborator.

    The engine treats it as opaque input and never recomputes detection.
    """
    report_id: str
    parts: tuple[DetectedPart, ...]
    overall_confidence: Decimal
    manual_review_flag: bool = False


# =============================================================================
# Valuation
# =============================================================================

@dataclass(frozen=True)
class PartAmount:
    """
    Valuation of one detected part.

    ``depreciated_cost = tariff_cost * (1 - depreciation_pct/100)``.
    ``approved_amount`` never exceeds the depreciated cost. Uncovered parts
    stay in the breakdown with a denial reason and an approved amount of 0.

    Attributes:
        adjustments: Limits that reduced the amount without denying the part
        estimated_cost: The vision estimate, kept for audit only
        citation: Top tariff citation backing ``tariff_cost``
    """
    part_name: str
    category: PartCategory
    tariff_cost: Decimal
    depreciation_pct: Decimal
    depreciated_cost: Decimal
    covered: bool
    approved_amount: Decimal
    denial_reason: Optional[DenialReason] = None
    adjustments: tuple[DenialReason, ...] = ()
    estimated_cost: Decimal = ZERO
    detection_confidence: Decimal = ZERO
    photo_ref: str = ""
    citation: Optional[Citation] = None

    @property
    def is_unmatched(self) -> bool:
        return self.denial_reason == DenialReason.UNMATCHED_TARIFF

    @property
    def reduction(self) -> Decimal:
        return self.depreciated_cost - self.approved_amount

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "part_name": self.part_name,
            "category": self.category.value,
            "tariff_cost": str(self.tariff_cost),
            "depreciation_pct": str(self.depreciation_pct),
            "depreciated_cost": str(self.depreciated_cost),
            "covered": self.covered,
            "approved_amount": str(self.approved_amount),
            "denial_reason": self.denial_reason.value if self.denial_reason else None,
            "adjustments": [a.value for a in self.adjustments],
            "estimated_cost": str(self.estimated_cost),
            "detection_confidence": str(self.detection_confidence),
            "photo_ref": self.photo_ref,
        }
        if self.citation:
            result["citation"] = self.citation.to_dict()
        return result


@dataclass(frozen=True)
class Valuation:
    """
    DamageValuator output.

    Attributes:
        parts: One PartAmount per detected part, in report order
        vehicle_age_months: Age used for the depreciation bracket
        provisional: Valuation needs human confirmation
        review_reasons: Why it is provisional
        tariff_source: Retrieval or static fallback
        citations: Tariff and depreciation citations
    """
    parts: tuple[PartAmount, ...]
    vehicle_age_months: int
    provisional: bool = False
    review_reasons: tuple[str, ...] = ()
    tariff_source: TariffSource = TariffSource.RETRIEVAL
    citations: tuple[Citation, ...] = ()

    @property
    def unmatched_parts(self) -> tuple[PartAmount, ...]:
        return tuple(p for p in self.parts if p.is_unmatched)

    @property
    def has_unmatched(self) -> bool:
        return any(p.is_unmatched for p in self.parts)

    @property
    def depreciated_total(self) -> Decimal:
        return total(p.depreciated_cost for p in self.parts)


# =============================================================================
# Limits
# =============================================================================

@dataclass(frozen=True)
class LimitEvent:
    """A policy limit that reduced the approved amounts."""
    clause: ClauseKey
    description: str
    amount_before: Decimal
    amount_after: Decimal
    citation: Citation

    def to_dict(self) -> dict[str, Any]:
        return {
            "clause": self.clause.value,
            "description": self.description,
            "amount_before": str(self.amount_before),
            "amount_after": str(self.amount_after),
            "citation": self.citation.to_dict(),
        }


@dataclass(frozen=True)
class LimitOutcome:
    """LimitEnforcer output: capped parts plus the limits that fired."""
    parts: tuple[PartAmount, ...]
    events: tuple[LimitEvent, ...] = ()
    annual_paid_snapshot: Decimal = ZERO
    snapshot_version: int = 0

    @property
    def total_approved(self) -> Decimal:
        return total(p.approved_amount for p in self.parts)


# =============================================================================
# Fraud Signals
# =============================================================================

EARTH_RADIUS_KM = 6371.0088


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 coordinate."""
    latitude: float
    longitude: float

    def distance_km(self, other: GeoPoint) -> float:
        """Great-circle (haversine) distance in kilometres."""
        lat1, lon1 = math.radians(self.latitude), math.radians(self.longitude)
        lat2, lon2 = math.radians(other.latitude), math.radians(other.longitude)
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class PhotoEvidence:
    """Raw signals extracted from one claim photo by the metadata provider."""
    photo_id: str
    taken_at: Optional[datetime] = None
    gps: Optional[GeoPoint] = None
    image_hash: str = ""
    device_id: str = ""
    manipulation_detected: bool = False


@dataclass(frozen=True)
class ClaimMetadata:
    """Claim-level raw signals from the fraud metadata provider."""
    claim_id: str
    incident_at: datetime
    reported_at: datetime
    claimed_amount: Decimal
    incident_location: Optional[GeoPoint] = None
    garage_id: Optional[str] = None
    photos: tuple[PhotoEvidence, ...] = ()


@dataclass(frozen=True)
class ClaimantHistory:
    """
    Claimant's historical claim pattern.

    Attributes:
        claims_last_12_months: Prior claims in the trailing policy year
        garage_claim_counts: Prior claims per garage id
        flagged_garages: Garages on the collusion watch list
        shared_device_ids: Device ids seen on other claimants' claims
    """
    claimant_id: str
    claims_last_12_months: int = 0
    garage_claim_counts: dict[str, int] = field(default_factory=dict)
    flagged_garages: frozenset[str] = frozenset()
    shared_device_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class FraudIndicator:
    """One suspicious pattern that contributed to the anomaly score."""
    indicator_type: FraudIndicatorType
    severity: IndicatorSeverity
    score_delta: int
    description: str
    evidence_ref: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.indicator_type.value,
            "severity": self.severity.value,
            "score_delta": self.score_delta,
            "description": self.description,
            "evidence_ref": self.evidence_ref,
        }


@dataclass(frozen=True)
class FraudAnalysis:
    """
    FraudScorer output.

    ``anomaly_score`` is an integer in [0, 100] inclusive.
    """
    claim_id: str
    anomaly_score: int
    flagged: bool
    indicators: tuple[FraudIndicator, ...]
    recommendation: FraudRecommendation
    unavailable_signals: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "anomaly_score": self.anomaly_score,
            "flagged": self.flagged,
            "indicators": [i.to_dict() for i in self.indicators],
            "recommendation": self.recommendation.value,
            "unavailable_signals": list(self.unavailable_signals),
        }


# =============================================================================
# Claim Submission
# =============================================================================

@dataclass(frozen=True)
class ClaimSubmission:
    """Everything the orchestration layer hands over for one claim."""
    claim_id: str
    policy_id: str
    damage_report: DamageReport
    metadata: ClaimMetadata
    history: ClaimantHistory
    submitted_at: datetime


@dataclass(frozen=True)
class ReviewResolution:
    """
    Human resolution of a claim suspended in requires_manual_review.

    Confirming the valuation lets the claim re-enter fraud_checked and be
    decided; unmatched parts stay uncovered.
    """
    reviewer_id: str
    resolved_at: datetime
    confirm_valuation: bool = True
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "reviewer_id": self.reviewer_id,
            "resolved_at": self.resolved_at.isoformat(),
            "confirm_valuation": self.confirm_valuation,
            "notes": self.notes,
        }


# =============================================================================
# Claim Decision
# =============================================================================

@dataclass(frozen=True)
class ClaimDecision:
    """
    Final claim decision.

    Attributes:
        status: One of the five ClaimStatus outcomes
        claimable_amount: ``max(0, sum(approved) - deductible)``; retained but
            withheld (payout pending) for fraud holds and manual review
        payout_status: payable / pending / none
        full_value: Entitlement before limits: depreciated total less deductible
        state_history: Lifecycle states traversed, in order
        authorization_ref: Approval-to-Repair reference (approved outcomes)
        decision_hash: Fingerprint of everything except processing_ms
        processing_ms: Wall-clock computation time
    """
    claim_id: str
    policy_id: str
    status: ClaimStatus
    claimable_amount: Decimal
    payout_status: PayoutStatus
    deductible_applied: Decimal
    approved_total: Decimal
    full_value: Decimal
    breakdown: tuple[PartAmount, ...]
    explanation: Explanation
    fraud_analysis: FraudAnalysis
    state_history: tuple[ClaimState, ...]
    limit_events: tuple[LimitEvent, ...] = ()
    authorization_ref: Optional[str] = None
    tariff_source: TariffSource = TariffSource.RETRIEVAL
    review: Optional[ReviewResolution] = None
    config_version: str = ""
    decision_hash: str = ""
    processing_ms: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def fingerprint_payload(self) -> dict[str, Any]:
        """Serialized decision without timing or the hash itself."""
        payload = self.to_dict(include_timing=False)
        payload.pop("decision_hash", None)
        return payload

    def to_dict(self, include_timing: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            "claim_id": self.claim_id,
            "policy_id": self.policy_id,
            "status": self.status.value,
            "claimable_amount": str(self.claimable_amount),
            "payout_status": self.payout_status.value,
            "deductible_applied": str(self.deductible_applied),
            "approved_total": str(self.approved_total),
            "full_value": str(self.full_value),
            "breakdown": [p.to_dict() for p in self.breakdown],
            "explanation": self.explanation.to_dict(),
            "fraud_analysis": self.fraud_analysis.to_dict(),
            "state_history": [s.value for s in self.state_history],
            "limit_events": [e.to_dict() for e in self.limit_events],
            "authorization_ref": self.authorization_ref,
            "tariff_source": self.tariff_source.value,
            "review": self.review.to_dict() if self.review else None,
            "config_version": self.config_version,
            "decision_hash": self.decision_hash,
        }
        if include_timing:
            result["processing_ms"] = self.processing_ms
        return result

"""Claim decision endpoints."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends

from api.schemas.requests import ClaimDecisionRequest, GeoPointInput, PolicyInput, ReviewRequest
from api.schemas.responses import DecisionResponse, ErrorResponse
from api.services import Services, get_services
from motorpilot.engine import parse_add_ons, parse_coverage_type
from motorpilot.exceptions import ClaimNotFoundError
from motorpilot.models import (
    ClaimantHistory,
    ClaimMetadata,
    ClaimSubmission,
    DamageReport,
    DetectedPart,
    GeoPoint,
    PartCategory,
    PhotoEvidence,
    Policy,
    ReviewResolution,
    Severity,
)

router = APIRouter(prefix="/claims", tags=["Claims"])

ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken as UTC so photo and incident times compare
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _geo(point: Optional[GeoPointInput]) -> Optional[GeoPoint]:
    if point is None:
        return None
    return GeoPoint(latitude=point.latitude, longitude=point.longitude)


def to_policy(policy: PolicyInput) -> Policy:
    return Policy(
        policy_id=policy.policy_id,
        coverage_type=parse_coverage_type(policy.coverage_type),
        idv=policy.idv,
        deductible=policy.deductible,
        total_claim_limit=policy.total_claim_limit,
        annual_claim_limit=policy.annual_claim_limit,
        per_part_limit=policy.per_part_limit,
        active_add_ons=frozenset(parse_add_ons(policy.active_add_ons)),
        vehicle_registration_date=policy.vehicle_registration_date,
        document_id=policy.document_id,
    )


def to_submission(request: ClaimDecisionRequest) -> ClaimSubmission:
    """Build the engine's claim submission from the request body."""
    report = request.damage_report
    meta = request.metadata
    history = request.history
    return ClaimSubmission(
        claim_id=request.claim_id,
        policy_id=request.policy_id,
        damage_report=DamageReport(
            report_id=report.report_id,
            parts=tuple(
                DetectedPart(
                    name=p.name,
                    category=PartCategory(p.category),
                    severity=Severity(p.severity),
                    estimated_cost=p.estimated_cost,
                    confidence=p.confidence,
                    photo_ref=p.photo_ref,
                )
                for p in report.parts
            ),
            overall_confidence=report.overall_confidence,
            manual_review_flag=report.manual_review_flag,
        ),
        metadata=ClaimMetadata(
            claim_id=request.claim_id,
            incident_at=_utc(meta.incident_at),
            reported_at=_utc(meta.reported_at),
            claimed_amount=meta.claimed_amount,
            incident_location=_geo(meta.incident_location),
            garage_id=meta.garage_id,
            photos=tuple(
                PhotoEvidence(
                    photo_id=p.photo_id,
                    taken_at=_utc(p.taken_at),
                    gps=_geo(p.gps),
                    image_hash=p.image_hash,
                    device_id=p.device_id,
                    manipulation_detected=p.manipulation_detected,
                )
                for p in meta.photos
            ),
        ),
        history=ClaimantHistory(
            claimant_id=request.claimant_id,
            claims_last_12_months=history.claims_last_12_months,
            garage_claim_counts=dict(history.garage_claim_counts),
            flagged_garages=frozenset(history.flagged_garages),
            shared_device_ids=frozenset(history.shared_device_ids),
        ),
        submitted_at=_utc(request.submitted_at) or datetime.now(timezone.utc),
    )


@router.post("/decision", response_model=DecisionResponse, responses=ERRORS)
def decide_claim(request: ClaimDecisionRequest, services: Services = Depends(get_services)):
    """
    Decide a claim.

    Safe to retry: a claim that already has a decision gets the stored
    decision back unchanged.
    """
    if request.policy is not None and not services.claim_store.has_policy(request.policy.policy_id):
        services.claim_store.add_policy(to_policy(request.policy))

    submission = to_submission(request)
    decision = services.claims.compute_claim_decision(submission)
    services.submissions.setdefault(submission.claim_id, submission)
    return decision.to_dict()


@router.get("/{claim_id}/decision", response_model=DecisionResponse, responses=ERRORS)
def get_decision(claim_id: str, services: Services = Depends(get_services)):
    """Return the committed decision for a claim."""
    decision = services.claim_store.get_decision(claim_id)
    if decision is None:
        raise ClaimNotFoundError(
            message="No decision recorded for claim", claim_id=claim_id, stage="claim_store",
        )
    return decision.to_dict()


@router.post("/{claim_id}/review", response_model=DecisionResponse, responses=ERRORS)
def review_claim(claim_id: str, request: ReviewRequest, services: Services = Depends(get_services)):
    """
    Resolve a claim suspended in requires_manual_review.

    The claim is re-evaluated and re-enters fraud_checked with the
    reviewer's verdict.
    """
    submission = services.submissions.get(claim_id)
    if submission is None:
        raise ClaimNotFoundError(
            message="No submission recorded for claim", claim_id=claim_id, stage="review",
        )

    resolution = ReviewResolution(
        reviewer_id=request.reviewer_id,
        resolved_at=datetime.now(timezone.utc),
        confirm_valuation=request.confirm_valuation,
        notes=request.notes,
    )
    decision = services.claims.resolve_review(submission, resolution)
    return decision.to_dict()

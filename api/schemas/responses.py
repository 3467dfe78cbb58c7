"""Response schemas for the API."""

from typing import Optional

from pydantic import BaseModel


# =============================================================================
# Shared
# =============================================================================

class CitationOut(BaseModel):
    """Citation to a tariff schedule, policy wording or regulation."""
    document_id: str
    section: Optional[str] = None
    page: Optional[int] = None
    excerpt: Optional[str] = None
    excerpt_hash: Optional[str] = None
    relevance_score: Optional[str] = None


class ExplanationOut(BaseModel):
    summary: str
    details: list[str]
    citations: list[CitationOut]


class ErrorResponse(BaseModel):
    """Structured error response."""
    code: str
    message: str
    retryable: bool = False
    details: Optional[dict] = None
    claim_id: Optional[str] = None
    stage: Optional[str] = None


# =============================================================================
# Underwriting
# =============================================================================

class ViolationOut(BaseModel):
    violation_id: str
    violation_type: str
    violation_date: str
    severity: str
    location: str


class RiskFactorOut(BaseModel):
    code: str
    label: str
    impact_pct: str
    rationale: str
    violation_ids: list[str]


class RiskAssessmentOut(BaseModel):
    applicant_id: str
    score: str
    factors: list[RiskFactorOut]
    source_violations: list[ViolationOut]
    assessed_as_of: str
    config_version: str


class AddOnPremiumOut(BaseModel):
    add_on: str
    amount: str
    description: str


class QuoteResponse(BaseModel):
    """Risk-adjusted premium quote. Amounts are decimal strings."""
    application_id: str
    coverage_type: str
    base_premium: str
    risk_adjustment: str
    add_on_premiums: list[AddOnPremiumOut]
    total_premium: str
    minimum_applied: bool
    explanation: str
    explanation_lines: list[str]
    quoted_at: str
    valid_until: str
    risk_assessment: RiskAssessmentOut
    config_version: str


# =============================================================================
# Claims
# =============================================================================

class PartAmountOut(BaseModel):
    part_name: str
    category: str
    tariff_cost: str
    depreciation_pct: str
    depreciated_cost: str
    covered: bool
    approved_amount: str
    denial_reason: Optional[str] = None
    adjustments: list[str]
    estimated_cost: str
    detection_confidence: str
    photo_ref: str
    citation: Optional[CitationOut] = None


class LimitEventOut(BaseModel):
    clause: str
    description: str
    amount_before: str
    amount_after: str
    citation: CitationOut


class FraudIndicatorOut(BaseModel):
    type: str
    severity: str
    score_delta: int
    description: str
    evidence_ref: str


class FraudAnalysisOut(BaseModel):
    claim_id: str
    anomaly_score: int
    flagged: bool
    indicators: list[FraudIndicatorOut]
    recommendation: str
    unavailable_signals: list[str]


class ReviewOut(BaseModel):
    reviewer_id: str
    resolved_at: str
    confirm_valuation: bool
    notes: str


class DecisionResponse(BaseModel):
    """Final claim decision. Amounts are decimal strings."""
    claim_id: str
    policy_id: str
    status: str  # approved|partially_approved|denied|requires_manual_review|flagged_fraud
    claimable_amount: str
    payout_status: str  # payable|pending|none
    deductible_applied: str
    approved_total: str
    full_value: str
    breakdown: list[PartAmountOut]
    explanation: ExplanationOut
    fraud_analysis: FraudAnalysisOut
    state_history: list[str]
    limit_events: list[LimitEventOut]
    authorization_ref: Optional[str] = None
    tariff_source: str
    review: Optional[ReviewOut] = None
    config_version: str
    decision_hash: str
    processing_ms: int


# =============================================================================
# Service
# =============================================================================

class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    engine_version: str
    config_version: str


class VersionResponse(BaseModel):
    """Version info response."""
    engine_version: str
    pack_id: str
    pack_name: str
    config_version: str
    schema_version: str
    currency: str

"""
MotorPilot Domain Models

Immutable records for the underwriting and claims pipelines.

Organized as:
- enums: closed value sets (severity, coverage, status, ...)
- citation: Citation, Explanation, ClauseBook
- underwriting: violations, risk assessment, premium quote
- claim: policy, damage report, valuation, limits, fraud, decision
- config: injected engine configuration
"""
from __future__ import annotations

from .enums import (
    AddOn,
    ClaimState,
    ClaimStatus,
    ClauseKey,
    CoverageType,
    DENIAL_CLAUSES,
    DenialReason,
    FraudIndicatorType,
    FraudRecommendation,
    IndicatorSeverity,
    PartCategory,
    PayoutStatus,
    Severity,
    TariffSource,
)
from .citation import (
    Citation,
    ClauseBook,
    Explanation,
    dedupe_citations,
)
from .underwriting import (
    AddOnPremium,
    PremiumApplication,
    PremiumQuote,
    RiskAssessment,
    RiskFactor,
    VehicleFacts,
    ViolationRecord,
)
from .claim import (
    ClaimDecision,
    ClaimMetadata,
    ClaimSubmission,
    ClaimantHistory,
    DamageReport,
    DetectedPart,
    FraudAnalysis,
    FraudIndicator,
    GeoPoint,
    LimitEvent,
    LimitOutcome,
    PartAmount,
    PhotoEvidence,
    Policy,
    PolicySnapshot,
    ReviewResolution,
    Valuation,
)
from .config import (
    AddOnRate,
    DecisionConfig,
    DepreciationConfig,
    EngineConfig,
    FraudConfig,
    PremiumConfig,
    RateBand,
    RiskConfig,
)

__all__ = [
    # Enums
    "AddOn",
    "ClaimState",
    "ClaimStatus",
    "ClauseKey",
    "CoverageType",
    "DENIAL_CLAUSES",
    "DenialReason",
    "FraudIndicatorType",
    "FraudRecommendation",
    "IndicatorSeverity",
    "PartCategory",
    "PayoutStatus",
    "Severity",
    "TariffSource",
    # Citations
    "Citation",
    "ClauseBook",
    "Explanation",
    "dedupe_citations",
    # Underwriting
    "AddOnPremium",
    "PremiumApplication",
    "PremiumQuote",
    "RiskAssessment",
    "RiskFactor",
    "VehicleFacts",
    "ViolationRecord",
    # Claims
    "ClaimDecision",
    "ClaimMetadata",
    "ClaimSubmission",
    "ClaimantHistory",
    "DamageReport",
    "DetectedPart",
    "FraudAnalysis",
    "FraudIndicator",
    "GeoPoint",
    "LimitEvent",
    "LimitOutcome",
    "PartAmount",
    "PhotoEvidence",
    "Policy",
    "PolicySnapshot",
    "ReviewResolution",
    "Valuation",
    # Config
    "AddOnRate",
    "DecisionConfig",
    "DepreciationConfig",
    "EngineConfig",
    "FraudConfig",
    "PremiumConfig",
    "RateBand",
    "RiskConfig",
]

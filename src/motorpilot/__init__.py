"""
MotorPilot - Motor Insurance Underwriting and Claim Decisioning Engine

MotorPilot prices motor policies from an applicant's violation history and
decides motor damage claims against policy limits, with every amount traced
to a tariff, a depreciation bracket or a policy clause.

Core Principle: "Every rupee is explained. Every reduction is cited."

Key Features:
- Risk scoring with recency and frequency weighting
- Risk-adjusted premium quotes with add-on pricing
- Tariff-based damage valuation with age and material depreciation
- Per-part, aggregate and annual limit enforcement (pro-rata, to the cent)
- Additive fraud anomaly scoring over claim metadata signals
- Explicit claim lifecycle state machine with manual-review resumption
- Idempotent, race-safe decision commits
- Configuration packs (YAML) carrying all rates, tables and clauses

Quick Start:
    from motorpilot.packs import load_default_pack
    from motorpilot.adapters import InMemoryClaimStore, InMemoryViolationStore
    from motorpilot.engine import ClaimsPipeline, UnderwritingPipeline

    pack = load_default_pack()

    underwriting = UnderwritingPipeline(InMemoryViolationStore(), config=pack.config)
    quote = underwriting.compute_premium(application)

    claims = ClaimsPipeline(
        claim_store=store,
        retriever=pack.static_retriever(),
        fallback_retriever=pack.static_retriever(),
        config=pack.config,
    )
    decision = claims.compute_claim_decision(submission)

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"
__author__ = "MotorPilot Team"

# =============================================================================
# Core Models (Re-exported for convenience)
# =============================================================================
from .models import (
    # Enums
    AddOn,
    ClaimState,
    ClaimStatus,
    ClauseKey,
    CoverageType,
    DenialReason,
    FraudIndicatorType,
    FraudRecommendation,
    PartCategory,
    PayoutStatus,
    Severity,
    TariffSource,
    # Citations
    Citation,
    Explanation,
    # Underwriting
    PremiumApplication,
    PremiumQuote,
    RiskAssessment,
    VehicleFacts,
    ViolationRecord,
    # Claims
    ClaimDecision,
    ClaimMetadata,
    ClaimSubmission,
    ClaimantHistory,
    DamageReport,
    DetectedPart,
    Policy,
    ReviewResolution,
    # Config
    EngineConfig,
)

# =============================================================================
# Engine
# =============================================================================
from .engine import ClaimsPipeline, UnderwritingPipeline

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    ComputationError,
    DataUnavailable,
    InvalidTransitionError,
    MotorPilotError,
    RetrievalUnavailable,
    ValidationError,
)

__all__ = [
    "__version__",
    # Enums
    "AddOn",
    "ClaimState",
    "ClaimStatus",
    "ClauseKey",
    "CoverageType",
    "DenialReason",
    "FraudIndicatorType",
    "FraudRecommendation",
    "PartCategory",
    "PayoutStatus",
    "Severity",
    "TariffSource",
    # Citations
    "Citation",
    "Explanation",
    # Underwriting
    "PremiumApplication",
    "PremiumQuote",
    "RiskAssessment",
    "VehicleFacts",
    "ViolationRecord",
    # Claims
    "ClaimDecision",
    "ClaimMetadata",
    "ClaimSubmission",
    "ClaimantHistory",
    "DamageReport",
    "DetectedPart",
    "Policy",
    "ReviewResolution",
    # Config
    "EngineConfig",
    # Engine
    "ClaimsPipeline",
    "UnderwritingPipeline",
    # Exceptions
    "ComputationError",
    "DataUnavailable",
    "InvalidTransitionError",
    "MotorPilotError",
    "RetrievalUnavailable",
    "ValidationError",
]

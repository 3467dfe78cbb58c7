"""
MotorPilot Enumerations

All closed value sets used by the underwriting and claims pipelines.
Organized by domain area.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Underwriting
# =============================================================================

class Severity(str, Enum):
    """Severity of a traffic violation or a detected damage."""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class CoverageType(str, Enum):
    """Motor policy coverage types."""
    COMPREHENSIVE = "comprehensive"      # Own damage + third party
    OWN_DAMAGE = "own_damage"            # Standalone own damage
    THIRD_PARTY = "third_party"          # Liability only, no own damage

    @property
    def covers_own_damage(self) -> bool:
        return self in (CoverageType.COMPREHENSIVE, CoverageType.OWN_DAMAGE)

    @property
    def covers_third_party(self) -> bool:
        return self in (CoverageType.COMPREHENSIVE, CoverageType.THIRD_PARTY)


class AddOn(str, Enum):
    """Optional policy add-on covers."""
    ZERO_DEPRECIATION = "zero_depreciation"
    GLASS_COVER = "glass_cover"
    ENGINE_PROTECT = "engine_protect"
    ROADSIDE_ASSISTANCE = "roadside_assistance"
    CONSUMABLES = "consumables"


# =============================================================================
# Damage Valuation
# =============================================================================

class PartCategory(str, Enum):
    """Material category of a damaged part; drives the depreciation table."""
    METAL = "metal"
    BODY = "body"
    GLASS = "glass"
    PLASTIC = "plastic"
    RUBBER = "rubber"
    BATTERY = "battery"

    @property
    def uses_elevated_depreciation(self) -> bool:
        return self in (PartCategory.PLASTIC, PartCategory.RUBBER, PartCategory.BATTERY)


class DenialReason(str, Enum):
    """Why a listed part contributes less than its depreciated cost."""
    UNMATCHED_TARIFF = "UNMATCHED_TARIFF"
    COVERAGE_EXCLUDED = "COVERAGE_EXCLUDED"
    PER_PART_LIMIT = "PER_PART_LIMIT"
    AGGREGATE_LIMIT = "AGGREGATE_LIMIT"
    ANNUAL_LIMIT_EXCEEDED = "ANNUAL_LIMIT_EXCEEDED"


class ClauseKey(str, Enum):
    """Policy clauses that can justify a reduction, exclusion or hold."""
    DEPRECIATION = "depreciation"
    PER_PART_LIMIT = "per_part_limit"
    AGGREGATE_LIMIT = "aggregate_limit"
    ANNUAL_LIMIT = "annual_limit"
    DEDUCTIBLE = "deductible"
    UNMATCHED_TARIFF = "unmatched_tariff"
    COVERAGE_EXCLUSION = "coverage_exclusion"
    MANUAL_REVIEW = "manual_review"
    FRAUD_INVESTIGATION = "fraud_investigation"


DENIAL_CLAUSES: dict[DenialReason, ClauseKey] = {
    DenialReason.UNMATCHED_TARIFF: ClauseKey.UNMATCHED_TARIFF,
    DenialReason.COVERAGE_EXCLUDED: ClauseKey.COVERAGE_EXCLUSION,
    DenialReason.PER_PART_LIMIT: ClauseKey.PER_PART_LIMIT,
    DenialReason.AGGREGATE_LIMIT: ClauseKey.AGGREGATE_LIMIT,
    DenialReason.ANNUAL_LIMIT_EXCEEDED: ClauseKey.ANNUAL_LIMIT,
}


class TariffSource(str, Enum):
    """Where the tariff/clause citations for a claim came from."""
    RETRIEVAL = "retrieval"
    STATIC_FALLBACK = "static_fallback"


# =============================================================================
# Fraud
# =============================================================================

class IndicatorSeverity(str, Enum):
    """Severity of a single fraud indicator."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FraudIndicatorType(str, Enum):
    """Independent suspicious-pattern conditions scored by FraudScorer."""
    CLAIM_FREQUENCY = "claim_frequency"
    HIGH_CLAIM_RATIO = "high_claim_ratio"
    LOCATION_MISMATCH = "location_mismatch"
    TIMESTAMP_INCONSISTENCY = "timestamp_inconsistency"
    IMAGE_MANIPULATION = "image_manipulation"
    GARAGE_COLLUSION = "garage_collusion"


class FraudRecommendation(str, Enum):
    """Action recommended by the anomaly score."""
    APPROVE = "approve"
    MANUAL_REVIEW = "manual_review"
    INVESTIGATE = "investigate"
    DENY = "deny"                        # Reserved for human investigators


# =============================================================================
# Claim Decision
# =============================================================================

class ClaimState(str, Enum):
    """Lifecycle states of a claim inside the decision engine."""
    SUBMITTED = "submitted"
    ASSESSED = "assessed"                # Damage + limits computed
    FRAUD_CHECKED = "fraud_checked"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    DENIED = "denied"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"
    FLAGGED_FRAUD = "flagged_fraud"


class ClaimStatus(str, Enum):
    """The five decision outcomes a ClaimDecision can carry."""
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    DENIED = "denied"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"
    FLAGGED_FRAUD = "flagged_fraud"

    @property
    def state(self) -> ClaimState:
        return ClaimState(self.value)

    @property
    def is_terminal(self) -> bool:
        return self is not ClaimStatus.REQUIRES_MANUAL_REVIEW

    @property
    def authorizes_repair(self) -> bool:
        """Whether an Approval-to-Repair document is issued."""
        return self in (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED)


class PayoutStatus(str, Enum):
    """Whether the claimable amount may be paid out."""
    PAYABLE = "payable"
    PENDING = "pending"                  # Withheld: fraud hold or manual review
    NONE = "none"                        # Denied

"""
MotorPilot Engine Configuration

Explicit, injected configuration for every scorer. Nothing in the engine
reads a module-level rate or depreciation table: each stage receives the
config object it needs, so tests are deterministic and packs can be
hot-swapped without shared mutable state.

Defaults below match the bundled ``in_motor_2024`` configuration pack.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .enums import AddOn, FraudIndicatorType, IndicatorSeverity, PartCategory, Severity


# =============================================================================
# Risk Scoring
# =============================================================================

@dataclass(frozen=True)
class RiskConfig:
    """
    Risk scoring constants.

    ``base_score`` equals ``neutral_score`` by default so a clean record
    produces no premium adjustment.
    """
    base_score: Decimal = Decimal("50")
    points_per_unit: Decimal = Decimal("5")
    severity_weights: dict[Severity, Decimal] = field(default_factory=lambda: {
        Severity.MINOR: Decimal("1"),
        Severity.MODERATE: Decimal("2"),
        Severity.SEVERE: Decimal("3"),
    })
    recent_months: int = 6
    recent_weight: Decimal = Decimal("1.0")
    mid_months: int = 12
    mid_weight: Decimal = Decimal("0.6")
    old_weight: Decimal = Decimal("0.3")
    frequency_step: Decimal = Decimal("0.2")
    frequency_cap: Decimal = Decimal("2.0")
    min_score: Decimal = Decimal("0")
    max_score: Decimal = Decimal("100")


# =============================================================================
# Premium
# =============================================================================

@dataclass(frozen=True)
class RateBand:
    """Upper-bound-inclusive band; ``upper`` of None is open-ended."""
    upper: Optional[int]
    value: Decimal

    def contains(self, x: int) -> bool:
        return self.upper is None or x <= self.upper


@dataclass(frozen=True)
class AddOnRate:
    """Add-on price: percent of base premium, plus an optional flat amount."""
    percent_of_base: Decimal = Decimal("0")
    flat_amount: Decimal = Decimal("0")
    description: str = ""


@dataclass(frozen=True)
class PremiumConfig:
    """Rate tables and pricing constants."""
    neutral_score: Decimal = Decimal("50")
    minimum_premium: Decimal = Decimal("1500.00")
    validity_days: int = 30
    # Own-damage rate in percent of IDV, by vehicle age in months
    own_damage_rates: tuple[RateBand, ...] = (
        RateBand(60, Decimal("2.80")),
        RateBand(120, Decimal("3.20")),
        RateBand(None, Decimal("3.60")),
    )
    # Third-party premium, by engine capacity in cc
    third_party_premiums: tuple[RateBand, ...] = (
        RateBand(1000, Decimal("2094.00")),
        RateBand(1500, Decimal("3416.00")),
        RateBand(None, Decimal("7897.00")),
    )
    add_on_rates: dict[AddOn, AddOnRate] = field(default_factory=lambda: {
        AddOn.ZERO_DEPRECIATION: AddOnRate(Decimal("15"), description="Nil depreciation on parts"),
        AddOn.GLASS_COVER: AddOnRate(Decimal("2"), description="No depreciation on glass"),
        AddOn.ENGINE_PROTECT: AddOnRate(Decimal("5"), description="Engine and gearbox protection"),
        AddOn.CONSUMABLES: AddOnRate(Decimal("3"), description="Nuts, bolts, oils and coolants"),
        AddOn.ROADSIDE_ASSISTANCE: AddOnRate(
            flat_amount=Decimal("199.00"), description="24x7 roadside assistance",
        ),
    })


# =============================================================================
# Depreciation
# =============================================================================

def _standard_brackets() -> tuple[RateBand, ...]:
    return (
        RateBand(6, Decimal("0")),
        RateBand(12, Decimal("5")),
        RateBand(24, Decimal("10")),
        RateBand(36, Decimal("15")),
        RateBand(48, Decimal("25")),
        RateBand(60, Decimal("35")),
        RateBand(None, Decimal("50")),
    )


def _elevated_brackets() -> tuple[RateBand, ...]:
    return (
        RateBand(6, Decimal("20")),
        RateBand(12, Decimal("25")),
        RateBand(24, Decimal("30")),
        RateBand(36, Decimal("35")),
        RateBand(48, Decimal("45")),
        RateBand(60, Decimal("50")),
        RateBand(None, Decimal("60")),
    )


@dataclass(frozen=True)
class DepreciationConfig:
    """
    Age-based depreciation tables, in percent.

    Brackets are upper-bound inclusive: a vehicle exactly 6 months old is in
    the first bracket. The elevated table (rubber, plastic, battery) must be
    stricter than the standard table at every bracket.
    """
    standard: tuple[RateBand, ...] = field(default_factory=_standard_brackets)
    elevated: tuple[RateBand, ...] = field(default_factory=_elevated_brackets)
    zero_depreciation_excluded: frozenset[PartCategory] = frozenset(
        {PartCategory.RUBBER, PartCategory.BATTERY}
    )


# =============================================================================
# Fraud
# =============================================================================

def _indicator_weights() -> dict[FraudIndicatorType, int]:
    return {
        FraudIndicatorType.CLAIM_FREQUENCY: 20,
        FraudIndicatorType.HIGH_CLAIM_RATIO: 15,
        FraudIndicatorType.LOCATION_MISMATCH: 25,
        FraudIndicatorType.TIMESTAMP_INCONSISTENCY: 30,
        FraudIndicatorType.IMAGE_MANIPULATION: 40,
        FraudIndicatorType.GARAGE_COLLUSION: 35,
    }


def _indicator_severities() -> dict[FraudIndicatorType, IndicatorSeverity]:
    return {
        FraudIndicatorType.CLAIM_FREQUENCY: IndicatorSeverity.LOW,
        FraudIndicatorType.HIGH_CLAIM_RATIO: IndicatorSeverity.LOW,
        FraudIndicatorType.LOCATION_MISMATCH: IndicatorSeverity.MEDIUM,
        FraudIndicatorType.TIMESTAMP_INCONSISTENCY: IndicatorSeverity.MEDIUM,
        FraudIndicatorType.IMAGE_MANIPULATION: IndicatorSeverity.HIGH,
        FraudIndicatorType.GARAGE_COLLUSION: IndicatorSeverity.HIGH,
    }


@dataclass(frozen=True)
class FraudConfig:
    """Anomaly score weights, signal thresholds and recommendation cut-offs."""
    weights: dict[FraudIndicatorType, int] = field(default_factory=_indicator_weights)
    severities: dict[FraudIndicatorType, IndicatorSeverity] = field(
        default_factory=_indicator_severities
    )
    max_claims_per_year: int = 2
    claim_to_idv_ratio: Decimal = Decimal("0.5")
    location_mismatch_km: float = 50.0
    max_photo_span_hours: float = 48.0
    pre_incident_tolerance_minutes: float = 60.0
    collusion_repeat_threshold: int = 3
    review_threshold: int = 40       # score >= review_threshold -> manual review
    flag_threshold: int = 70         # score > flag_threshold -> investigate
    max_score: int = 100


# =============================================================================
# Decision
# =============================================================================

@dataclass(frozen=True)
class DecisionConfig:
    """Decision assembly and orchestration settings."""
    confidence_threshold: Decimal = Decimal("80")
    decision_timeout_seconds: float = 30.0
    max_commit_attempts: int = 3
    max_workers: int = 2
    authorization_prefix: str = "ATR"
    min_tariff_relevance: Decimal = Decimal("0")


# =============================================================================
# Engine Config
# =============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """
    Complete configuration injected into the pipelines.

    Attributes:
        version: Content hash of the pack this config was loaded from
            (empty for in-code defaults)
    """
    risk: RiskConfig = field(default_factory=RiskConfig)
    premium: PremiumConfig = field(default_factory=PremiumConfig)
    depreciation: DepreciationConfig = field(default_factory=DepreciationConfig)
    fraud: FraudConfig = field(default_factory=FraudConfig)
    decision: DecisionConfig = field(default_factory=DecisionConfig)
    version: str = ""

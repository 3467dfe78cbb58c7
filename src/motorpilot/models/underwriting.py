"""
MotorPilot Underwriting Models

Inputs and outputs of the purchase path: RiskScorer -> PremiumCalculator.

Key components:
- ViolationRecord: one entry of an applicant's violation history
- RiskAssessment: bounded risk score with contributing factors
- PremiumApplication / VehicleFacts: what is being quoted
- PremiumQuote: risk-adjusted premium with explanation

All records are immutable. A new application produces a new assessment and
a new quote; nothing is updated in place.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from ..dates import months_between
from .enums import AddOn, CoverageType, Severity


# =============================================================================
# Violation History
# =============================================================================

@dataclass(frozen=True)
class ViolationRecord:
    """
    A recorded traffic violation. Owned by the violation-history store.

    Attributes:
        violation_id: Store identifier
        violation_type: Normalized type (e.g., "speeding", "red_light")
        violation_date: Date the violation occurred
        severity: minor / moderate / severe
        location: Where the violation was recorded
    """
    violation_id: str
    violation_type: str
    violation_date: date
    severity: Severity
    location: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "violation_id": self.violation_id,
            "violation_type": self.violation_type,
            "violation_date": self.violation_date.isoformat(),
            "severity": self.severity.value,
            "location": self.location,
        }


# =============================================================================
# Risk Assessment
# =============================================================================

@dataclass(frozen=True)
class RiskFactor:
    """
    A single contribution to the risk score.

    One risk point moves the premium by one percent of the base premium,
    so ``impact_pct`` is also the factor's premium impact.
    """
    code: str
    label: str
    impact_pct: Decimal
    rationale: str
    violation_ids: tuple[str, ...] = ()

    @property
    def is_nonzero(self) -> bool:
        return self.impact_pct != 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "impact_pct": str(self.impact_pct),
            "rationale": self.rationale,
            "violation_ids": list(self.violation_ids),
        }


@dataclass(frozen=True)
class RiskAssessment:
    """
    Bounded risk score for an applicant.

    Attributes:
        applicant_id: Applicant the history belongs to
        score: Risk score in [0, 100]
        factors: Contributing factors (never empty)
        source_violations: Violations that were scored
        assessed_as_of: Business date recency was measured against
        config_version: Hash of the configuration pack used
    """
    applicant_id: str
    score: Decimal
    factors: tuple[RiskFactor, ...]
    source_violations: tuple[ViolationRecord, ...]
    assessed_as_of: date
    config_version: str = ""

    @property
    def nonzero_factors(self) -> tuple[RiskFactor, ...]:
        return tuple(f for f in self.factors if f.is_nonzero)

    def to_dict(self) -> dict[str, Any]:
        return {
            "applicant_id": self.applicant_id,
            "score": str(self.score),
            "factors": [f.to_dict() for f in self.factors],
            "source_violations": [v.to_dict() for v in self.source_violations],
            "assessed_as_of": self.assessed_as_of.isoformat(),
            "config_version": self.config_version,
        }


# =============================================================================
# Premium Application
# =============================================================================

@dataclass(frozen=True)
class VehicleFacts:
    """Vehicle facts used by the rate table."""
    registration: str
    make: str
    model: str
    manufacture_date: date
    engine_cc: int
    idv: Decimal

    def age_months(self, as_of: date) -> int:
        """Completed months between manufacture and ``as_of``."""
        return months_between(self.manufacture_date, as_of)


@dataclass(frozen=True)
class PremiumApplication:
    """
    A request for a premium quote.

    ``coverage_type`` and ``add_ons`` accept raw strings from callers and are
    validated by the PremiumCalculator. ``as_of`` is the business timestamp of
    the request; it anchors recency and quote validity so that retries
    produce the same quote.
    """
    application_id: str
    applicant_id: str
    vehicle: VehicleFacts
    coverage_type: Any
    as_of: datetime
    add_ons: tuple[Any, ...] = ()


# =============================================================================
# Premium Quote
# =============================================================================

@dataclass(frozen=True)
class AddOnPremium:
    """Premium charged for one add-on cover."""
    add_on: AddOn
    amount: Decimal
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "add_on": self.add_on.value,
            "amount": str(self.amount),
            "description": self.description,
        }


@dataclass(frozen=True)
class PremiumQuote:
    """
    Risk-adjusted premium quote.

    Invariant: ``total_premium = max(minimum, base + adjustment + add-ons)``
    and is never negative, whatever the risk adjustment.
    """
    application_id: str
    coverage_type: CoverageType
    base_premium: Decimal
    risk_adjustment: Decimal
    add_on_premiums: tuple[AddOnPremium, ...]
    total_premium: Decimal
    explanation: str
    quoted_at: datetime
    valid_until: datetime
    risk_assessment: RiskAssessment
    explanation_lines: tuple[str, ...] = ()
    minimum_applied: bool = False
    config_version: str = ""

    @property
    def add_on_total(self) -> Decimal:
        return sum((a.amount for a in self.add_on_premiums), Decimal("0.00"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "application_id": self.application_id,
            "coverage_type": self.coverage_type.value,
            "base_premium": str(self.base_premium),
            "risk_adjustment": str(self.risk_adjustment),
            "add_on_premiums": [a.to_dict() for a in self.add_on_premiums],
            "total_premium": str(self.total_premium),
            "minimum_applied": self.minimum_applied,
            "explanation": self.explanation,
            "explanation_lines": list(self.explanation_lines),
            "quoted_at": self.quoted_at.isoformat(),
            "valid_until": self.valid_until.isoformat(),
            "risk_assessment": self.risk_assessment.to_dict(),
            "config_version": self.config_version,
        }
